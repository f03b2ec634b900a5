"""Address resolution against a Google Geocoding API compatible endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate
from ..geospatial import bounds_to_param, point_in_bounds

logger = logging.getLogger(__name__)


class AddressResolver:
    """Turns free-text addresses into coordinates.

    Every failure mode (blank input, no match, quota errors, HTTP or network
    failures, malformed payloads) is reported as ``None`` so one bad address
    never aborts a batch.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        address_suffix: str | None = None,
        region: str | None = None,
        bias_bounds: Sequence[float] | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url or settings.geocoder_base_url
        self.api_key = api_key if api_key is not None else settings.geocoder_api_key
        self.address_suffix = address_suffix if address_suffix is not None else settings.geocoder_address_suffix
        self.region = region if region is not None else settings.geocoder_region
        self.bias_bounds = tuple(bias_bounds) if bias_bounds is not None else settings.geocoder_bias_bounds
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.geocoder_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.geocoder_backoff_seconds
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=5.0))
        return self._client

    def _params(self, address: str) -> dict:
        params = {
            "address": f"{address}{self.address_suffix}",
            "bounds": bounds_to_param(self.bias_bounds),
            "region": self.region,
        }
        if self.api_key:
            params["key"] = self.api_key
        return params

    async def _fetch(self, address: str) -> dict:
        client = self._get_client()
        attempt = 0
        while True:
            try:
                response = await client.get(self.base_url, params=self._params(address))
                response.raise_for_status()
                return response.json()
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Geocoder network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                await asyncio.sleep(wait_time)

    async def resolve(self, address: str | None) -> Coordinate | None:
        """Resolve ``address`` to a coordinate, or ``None`` when it cannot be resolved."""
        if not address or not address.strip():
            return None
        address = address.strip()

        try:
            data = await self._fetch(address)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Geocoding failed for '{address}': {exc}")
            return None

        status = data.get("status") if isinstance(data, dict) else None
        if status != "OK":
            logger.warning(f"Geocoder returned status {status!r} for '{address}'")
            return None

        try:
            location = data["results"][0]["geometry"]["location"]
            coordinate = Coordinate(lat=float(location["lat"]), lng=float(location["lng"]))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning(f"Geocoder response for '{address}' is missing a location: {exc}")
            return None

        if not point_in_bounds(coordinate.lat, coordinate.lng, self.bias_bounds):
            logger.info(f"'{address}' resolved outside the bias region at ({coordinate.lat:.5f}, {coordinate.lng:.5f})")
        return coordinate

    async def resolve_pair(
        self, source: str | None, destination: str | None
    ) -> tuple[Coordinate | None, Coordinate | None]:
        source_coords, dest_coords = await asyncio.gather(self.resolve(source), self.resolve(destination))
        return source_coords, dest_coords

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
