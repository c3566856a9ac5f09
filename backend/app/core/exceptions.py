"""
Domain exceptions and their HTTP mapping.

Services raise these; the global handler in ``app.main`` converts them with
``to_http_exception`` so routers never catch domain errors themselves.
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException


class FactoryOpsException(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationException(FactoryOpsException):
    status_code = 422
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        super().__init__(f"Invalid value for '{field}': {message}", {"field": field})
        self.field = field


class EntityNotFoundException(FactoryOpsException):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} with id '{entity_id}' not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class BusinessRuleViolationException(FactoryOpsException):
    status_code = 400
    code = "BUSINESS_RULE_VIOLATION"


class InvalidStateTransitionException(FactoryOpsException):
    status_code = 409
    code = "INVALID_STATE_TRANSITION"

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"{entity} cannot transition from '{current}' to '{target}'",
            {"entity": entity, "current": current, "target": target},
        )


class TeamOffShiftException(BusinessRuleViolationException):
    status_code = 409
    code = "TEAM_OFF_SHIFT"

    def __init__(self, team_code: str, slot: str):
        super().__init__(
            f"Team {team_code} is not scheduled for the current shift (slot: {slot})",
            {"team_code": team_code, "slot": slot},
        )


class ProductionBlockedException(BusinessRuleViolationException):
    status_code = 409
    code = "PRODUCTION_BLOCKED"

    def __init__(self, machine_id: int, pending_configs: List[Dict[str, Any]]):
        super().__init__(
            f"Production on machine {machine_id} is blocked by pending quality tests",
            {"machine_id": machine_id, "pending_configs": pending_configs},
        )
        self.machine_id = machine_id
        self.pending_configs = pending_configs


class TransientPersistenceException(FactoryOpsException):
    status_code = 503
    code = "TRANSIENT_PERSISTENCE_ERROR"

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Temporary persistence failure during {operation}",
            {"operation": operation, "cause": type(cause).__name__ if cause else None},
        )
        self.operation = operation


def to_http_exception(exc: FactoryOpsException) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())
