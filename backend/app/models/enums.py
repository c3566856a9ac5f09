from enum import Enum


class MachineStatus(str, Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    MAINTENANCE = "MAINTENANCE"
    ERROR = "ERROR"
    OFF_SHIFT = "OFF_SHIFT"


class ShiftType(str, Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"


class RotationSlot(str, Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"
    REST = "REST"

    @property
    def shift_type(self):
        if self is RotationSlot.REST:
            return None
        return ShiftType(self.value)


class GateStatus(str, Enum):
    OK = "OK"
    PENDING = "PENDING"


class GateReason(str, Enum):
    FREQUENCY = "FREQUENCY"
    PRODUCTS_PER_TEST = "PRODUCTS_PER_TEST"


class AlertSeverity(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AlertResolution(str, Enum):
    ACKNOWLEDGED = "ACKNOWLEDGED"
    TEST_PASSED = "TEST_PASSED"


class TargetRole(str, Enum):
    MANAGER = "MANAGER"
    LEADER = "LEADER"
    OPERATOR = "OPERATOR"


def sql_in(enum_cls) -> str:
    """Render enum values for a CHECK ... IN (...) clause."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
