"""HTTP client for the route scoring and persistence backend."""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import ValidationError

from ...config import settings
from ...errors import CommitError, PlanningServiceError
from ...schemas.planner import BatchPlanRequest, BatchPlanResponse, SaveRouteRequest, SaveRouteResponse

PLAN_BATCH_PATH = "/admin/route/plan-batch"
SELECT_AND_SAVE_PATH = "/admin/route/select-and-save"

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response, fallback: str) -> str:
    """Extract the server-provided ``detail`` message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or fallback
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
        if detail:
            return str(detail)
    return fallback


class PlannerClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.planner_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("Planner base URL is not configured.")
        self.token = token if token is not None else settings.planner_token
        self.timeout = timeout if timeout is not None else settings.planner_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.planner_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.planner_backoff_seconds
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0))
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _post(self, path: str, payload: dict) -> httpx.Response:
        """POST with retries on timeouts, network errors and 5xx responses.

        4xx responses are returned to the caller without retrying.
        """
        client = self._get_client()
        url = f"{self.base_url}{path}"
        attempt = 0
        while True:
            try:
                response = await client.post(url, json=payload, headers=self._headers())
                if response.status_code >= 500 and attempt < self.max_retries:
                    attempt += 1
                    logger.debug(f"Planner returned {response.status_code}, retrying (attempt {attempt}/{self.max_retries})")
                    await asyncio.sleep(self.backoff_seconds * attempt)
                    continue
                return response
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise ConnectionError(f"Failed to reach planner service at {self.base_url}: {exc}") from exc
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Planner network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                await asyncio.sleep(wait_time)

    async def plan_batch(self, request: BatchPlanRequest) -> BatchPlanResponse:
        try:
            response = await self._post(PLAN_BATCH_PATH, request.model_dump())
        except ConnectionError as exc:
            raise PlanningServiceError(str(exc)) from exc

        if response.is_error:
            detail = _error_detail(response, "Failed to plan routes")
            logger.warning(f"Batch planning rejected ({response.status_code}): {detail}")
            raise PlanningServiceError(detail, status_code=response.status_code)

        try:
            return BatchPlanResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PlanningServiceError(f"Planner returned a malformed response: {exc}") from exc

    async def save_selection(self, request: SaveRouteRequest) -> SaveRouteResponse:
        try:
            response = await self._post(SELECT_AND_SAVE_PATH, request.model_dump())
        except ConnectionError as exc:
            raise CommitError(str(exc)) from exc

        if response.is_error:
            detail = _error_detail(response, "Failed to save route")
            logger.warning(f"Saving route for {request.bus_number} rejected ({response.status_code}): {detail}")
            raise CommitError(detail, status_code=response.status_code)

        try:
            return SaveRouteResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise CommitError(f"Planner returned a malformed save acknowledgment: {exc}") from exc

    async def check_health(self) -> bool:
        """Return True when the planner base URL answers at all."""
        try:
            response = await self._get_client().get(self.base_url, timeout=5.0)
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
