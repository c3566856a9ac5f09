# Routers package — Thin Controllers (SRP / DIP)
from app.routers import (
    machines,
    shifts,
    production,
    oee,
    quality_gates,
    alerts,
    rotation,
)

__all__ = [
    "machines",
    "shifts",
    "production",
    "oee",
    "quality_gates",
    "alerts",
    "rotation",
]
