"""HTTP API (FastAPI)."""

from .proxy import app

__all__ = ["app"]
