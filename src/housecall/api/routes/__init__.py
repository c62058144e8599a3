"""Route group exports."""

from . import health, location, routes

__all__ = ["health", "location", "routes"]
