"""
FastAPI dependency injection providers.

Provides database sessions, settings and the business clock.
"""

from datetime import datetime
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.database import get_db


def get_db_session() -> Generator[Session, None, None]:
    """
    Dependency injection for database session.

    Commits when the request succeeds, rolls back when it raises.
    """
    yield from get_db()


def get_app_settings() -> Settings:
    """Dependency injection for settings."""
    return get_settings()


def get_now(settings: Settings = Depends(get_app_settings)) -> datetime:
    """Current instant in the business timezone."""
    return datetime.now(settings.tzinfo)
