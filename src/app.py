"""
ASGI entry point for Salon Scheduler API.

Re-exports the FastAPI app from src/api/main.py so servers can load `src.app:app`.
"""

from src.api.main import app

__all__ = ["app"]
