"""
Salon Scheduler API module.

Provides FastAPI HTTP endpoints for availability, blocks, bookings and the calendar.
"""

from src.api.main import app, run_server

__all__ = ["app", "run_server"]
