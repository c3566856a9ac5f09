"""
FastAPI dependency providers for the shift engine.

Tests override these through ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Callable

from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.schemas.oee import OEEResult
from app.utils.clock import Clock, get_clock
from app.utils.store import KeyValueStore, RedisTTLStore


def get_engine_clock() -> Clock:
    return get_clock()


@lru_cache(maxsize=1)
def get_oee_store() -> KeyValueStore:
    return RedisTTLStore(
        settings.REDIS_URL,
        namespace=settings.REDIS_KEY_PREFIX,
        default_ttl=settings.OEE_LAST_KNOWN_TTL_SECONDS,
        model=OEEResult,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
    )


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal
