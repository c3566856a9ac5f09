from datetime import date
from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./factoryops.db"
    ENVIRONMENT: str = "development"
    AUTO_CREATE_TABLES: bool = True
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    DEBUG: bool = True
    APP_NAME: str = "FactoryOps Shift Engine"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ENABLE_REQUEST_ID: bool = True
    ENABLE_REQUEST_LOGGING: bool = True
    READINESS_CHECK_DATABASE: bool = True

    # Plant calendar
    PLANT_TIMEZONE: str = "America/Sao_Paulo"
    DAY_SHIFT_START_HOUR: int = 7
    NIGHT_SHIFT_START_HOUR: int = 19
    SHIFT_TRANSITION_GRACE_MINUTES: int = 5

    # 3x3 rotation
    ROTATION_CYCLE_DAYS: int = 12
    ROTATION_REFERENCE_DATE: date = date(2024, 1, 1)

    # OEE read path
    OEE_FANOUT_MAX_WORKERS: int = 4
    OEE_MACHINE_TIMEOUT_SECONDS: float = 10.0
    OEE_LAST_KNOWN_TTL_SECONDS: int = 900

    # Shared last-known OEE store
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_KEY_PREFIX: str = "factoryops"

    # Total attempts for transient persistence failures (1 retry)
    PERSISTENCE_RETRY_ATTEMPTS: int = 2
    PERSISTENCE_RETRY_WAIT_SECONDS: float = 0.2

    ALERT_TARGET_ROLES: str = "MANAGER,LEADER,OPERATOR"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def alert_target_roles_list(self) -> List[str]:
        return [r.strip().upper() for r in self.ALERT_TARGET_ROLES.split(",") if r.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in {"prod", "production"}

    @model_validator(mode="after")
    def validate_shift_calendar(self):
        if not (0 <= self.DAY_SHIFT_START_HOUR < self.NIGHT_SHIFT_START_HOUR <= 23):
            raise ValueError("DAY_SHIFT_START_HOUR must be before NIGHT_SHIFT_START_HOUR within one day.")
        if self.ROTATION_CYCLE_DAYS <= 0 or self.ROTATION_CYCLE_DAYS % 4 != 0:
            raise ValueError("ROTATION_CYCLE_DAYS must be a positive multiple of 4.")
        if self.PERSISTENCE_RETRY_ATTEMPTS < 1:
            raise ValueError("PERSISTENCE_RETRY_ATTEMPTS must be at least 1.")
        return self

    @model_validator(mode="after")
    def validate_production_safety(self):
        if not self.is_production:
            return self

        if "sqlite" in self.DATABASE_URL.lower():
            raise ValueError("SQLite is not allowed when ENVIRONMENT is production.")

        if self.AUTO_CREATE_TABLES:
            raise ValueError("AUTO_CREATE_TABLES must be false in production; use Alembic migrations.")

        return self


settings = Settings()
