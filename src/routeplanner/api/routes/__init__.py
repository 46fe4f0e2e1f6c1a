"""Route group exports."""

from . import health, places

__all__ = ["health", "places"]
