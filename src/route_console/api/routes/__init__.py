"""Route group exports."""

from . import health, planning

__all__ = ["health", "planning"]
