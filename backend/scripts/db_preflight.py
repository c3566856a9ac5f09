"""Deployment preflight for the shift engine.

Usage:
    python scripts/db_preflight.py

Validates the environment the engine will run with: database safety in
production, a shift calendar the engine can work with and a Redis URL
for the shared last-known OEE store.
Exits non-zero when any required control fails.
"""

from __future__ import annotations

import os
import sys
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _int_env(env: Mapping[str, str], name: str, default: int) -> Optional[int]:
    try:
        return int(env.get(name, default))
    except (TypeError, ValueError):
        return None


def _timezone_ok(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def collect_checks(env: Mapping[str, str]) -> list[tuple[str, bool, str]]:
    environment = env.get("ENVIRONMENT", "development").strip().lower()
    database_url = env.get("DATABASE_URL", "sqlite:///./factoryops.db")
    auto_create_tables = _bool_env(env, "AUTO_CREATE_TABLES", True)
    timezone = env.get("PLANT_TIMEZONE", "America/Sao_Paulo")
    day_start = _int_env(env, "DAY_SHIFT_START_HOUR", 7)
    night_start = _int_env(env, "NIGHT_SHIFT_START_HOUR", 19)
    cycle_days = _int_env(env, "ROTATION_CYCLE_DAYS", 12)
    redis_url = env.get("REDIS_URL", "redis://localhost:6379/0")

    checks: list[tuple[str, bool, str]] = [
        ("ENVIRONMENT is explicitly set", bool(environment), f"ENVIRONMENT={environment or '<empty>'}"),
        ("PLANT_TIMEZONE is a known timezone", _timezone_ok(timezone), f"PLANT_TIMEZONE={timezone}"),
        (
            "Day shift starts before night shift",
            day_start is not None and night_start is not None and 0 <= day_start < night_start <= 23,
            f"DAY_SHIFT_START_HOUR={day_start} NIGHT_SHIFT_START_HOUR={night_start}",
        ),
        (
            "Rotation cycle splits into four equal blocks",
            cycle_days is not None and cycle_days > 0 and cycle_days % 4 == 0,
            f"ROTATION_CYCLE_DAYS={cycle_days}",
        ),
        (
            "REDIS_URL points at a Redis server",
            redis_url.startswith(("redis://", "rediss://", "unix://")),
            f"REDIS_URL={redis_url}",
        ),
    ]

    if environment in {"production", "prod"}:
        checks.extend(
            [
                (
                    "DATABASE_URL is not SQLite",
                    "sqlite" not in database_url.lower(),
                    f"DATABASE_URL={database_url}",
                ),
                (
                    "AUTO_CREATE_TABLES is disabled",
                    not auto_create_tables,
                    f"AUTO_CREATE_TABLES={auto_create_tables}",
                ),
            ]
        )
    return checks


def run(env: Optional[Mapping[str, str]] = None) -> int:
    env = os.environ if env is None else env
    checks = collect_checks(env)

    has_failures = False
    print("FactoryOps DB Preflight")
    print(f"- environment: {env.get('ENVIRONMENT', 'development')}")
    for title, ok, detail in checks:
        marker = "PASS" if ok else "FAIL"
        print(f"[{marker}] {title} ({detail})")
        if not ok:
            has_failures = True

    if has_failures:
        print("\nPreflight failed. Resolve failed checks before deployment.")
        return 1

    print("\nPreflight passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
