"""
Quality Gate Service — when is a mandatory quality test due?

Each active config on a machine carries two independent conditions measured
from its baseline (the latest test of that config, passing or not, or the
config's creation time when it has never been tested):

- FREQUENCY: hours since the baseline reached ``test_frequency_hours``
- PRODUCTS_PER_TEST: units produced on the machine after the baseline reached
  ``products_per_test``

A threshold of 0 disables its condition. Configs with ``block_production``
stop the machine from starting while they are pending; every other config is
advisory.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import EntityNotFoundException, ProductionBlockedException
from app.models.enums import GateReason, GateStatus
from app.models.quality_gate_config import QualityGateConfig
from app.repositories.machine_repository import MachineRepository
from app.repositories.production_delta_repository import ProductionDeltaRepository
from app.repositories.quality_gate_repository import QualityGateConfigRepository, QualityTestRecordRepository
from app.schemas.quality_gate import (
    ConfigGateEvaluation,
    ConfigIssue,
    GateReasonDetail,
    QualityGateConfigCreate,
    QualityGateConfigUpdate,
    QualityGateStatusResponse,
)
from app.utils.clock import Clock, get_clock

logger = logging.getLogger(__name__)

PASS_RATE_WINDOW_DAYS = 30


def hours_between(start: datetime, end: datetime) -> float:
    return max(0.0, (end - start).total_seconds() / 3600)


def gate_reasons(
    config: QualityGateConfig,
    hours_since_baseline: float,
    production_since_baseline: int,
) -> List[GateReasonDetail]:
    reasons = []
    frequency = float(config.test_frequency_hours or 0)
    if frequency > 0 and hours_since_baseline >= frequency:
        reasons.append(GateReasonDetail(
            reason=GateReason.FREQUENCY,
            measured=round(hours_since_baseline, 2),
            threshold=frequency,
            exceed_by=round(hours_since_baseline - frequency, 2),
        ))
    products = int(config.products_per_test or 0)
    if products > 0 and production_since_baseline >= products:
        reasons.append(GateReasonDetail(
            reason=GateReason.PRODUCTS_PER_TEST,
            measured=production_since_baseline,
            threshold=products,
            exceed_by=production_since_baseline - products,
        ))
    return reasons


class QualityGateService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or get_clock()
        self._repo = QualityGateConfigRepository(db)
        self._test_repo = QualityTestRecordRepository(db)
        self._delta_repo = ProductionDeltaRepository(db)
        self._machine_repo = MachineRepository(db)

    # ── Config CRUD ─────────────────────────────────────────────────────────

    def create_config(self, data: QualityGateConfigCreate) -> QualityGateConfig:
        self._require_machine(data.machine_id)
        now = self._clock.now()
        config = QualityGateConfig(**data.model_dump(), is_active=True, created_at=now, updated_at=now)
        config = self._repo.create(config)
        logger.info("quality_gate_config_created", extra={"machine_id": config.machine_id, "config_id": config.id})
        return config

    def get_config(self, config_id: int) -> QualityGateConfig:
        config = self._repo.get_by_id(config_id)
        if not config:
            raise EntityNotFoundException("QualityGateConfig", config_id)
        return config

    def list_configs(self, machine_id: int, active_only: bool = True) -> List[QualityGateConfig]:
        return self._repo.fetch_quality_configs(machine_id, active_only=active_only)

    def update_config(self, config_id: int, data: QualityGateConfigUpdate) -> QualityGateConfig:
        config = self.get_config(config_id)
        updates = data.model_dump(exclude_unset=True)
        updates["updated_at"] = self._clock.now()
        return self._repo.update(config, updates)

    def deactivate_config(self, config_id: int) -> QualityGateConfig:
        config = self.get_config(config_id)
        return self._repo.update(config, {"is_active": False, "updated_at": self._clock.now()})

    # ── Evaluation ──────────────────────────────────────────────────────────

    def baseline_for(self, config: QualityGateConfig) -> datetime:
        latest = self._test_repo.fetch_latest(config.machine_id, config.id)
        return latest.test_date if latest else config.created_at

    def evaluate_config(self, config: QualityGateConfig, now: Optional[datetime] = None) -> ConfigGateEvaluation:
        now = now or self._clock.now()
        baseline = self.baseline_for(config)
        hours_since = hours_between(baseline, now)
        produced = self._delta_repo.sum_units_since(config.machine_id, baseline)
        reasons = gate_reasons(config, hours_since, produced)

        recent = self._test_repo.fetch_test_records(
            config.machine_id, config.id, since=now - timedelta(days=PASS_RATE_WINDOW_DAYS)
        )
        pass_rate = None
        if recent:
            pass_rate = round(sum(1 for t in recent if t.approved) / len(recent) * 100, 2)

        return ConfigGateEvaluation(
            config_id=config.id,
            pending=bool(reasons),
            test_name=config.test_name,
            is_required=config.is_required,
            block_production=config.block_production,
            baseline=baseline,
            hours_since_baseline=round(hours_since, 2),
            production_since_baseline=produced,
            reasons=reasons,
            tests_last_30_days=len(recent),
            pass_rate=pass_rate,
            min_pass_rate=config.min_pass_rate,
            pass_rate_ok=pass_rate is None or pass_rate >= config.min_pass_rate,
        )

    def evaluate_quality_gate(self, machine_id: int) -> QualityGateStatusResponse:
        self._require_machine(machine_id)
        now = self._clock.now()
        evaluations = [self.evaluate_config(c, now) for c in self._repo.fetch_quality_configs(machine_id)]
        pending = [e for e in evaluations if e.pending]
        return QualityGateStatusResponse(
            machine_id=machine_id,
            status=GateStatus.PENDING if pending else GateStatus.OK,
            evaluated_at=now,
            pending_configs=pending,
            configs=evaluations,
            blocking=any(e.block_production for e in pending),
        )

    def ensure_production_allowed(self, machine_id: int) -> QualityGateStatusResponse:
        status = self.evaluate_quality_gate(machine_id)
        # Any pending blocking config blocks, whatever the other configs say
        blocking = [e for e in status.pending_configs if e.block_production]
        if blocking:
            logger.warning(
                "production_blocked",
                extra={"machine_id": machine_id, "config_ids": [e.config_id for e in blocking]},
            )
            raise ProductionBlockedException(
                machine_id,
                [
                    {"config_id": e.config_id, "test_name": e.test_name, "reasons": [r.reason.value for r in e.reasons]}
                    for e in blocking
                ],
            )
        return status

    def find_config_issues(self, machine_id: int) -> List[ConfigIssue]:
        self._require_machine(machine_id)
        issues = []
        for config in self._repo.fetch_quality_configs(machine_id):
            if config.is_required and not config.test_frequency_hours and not config.products_per_test:
                issues.append(ConfigIssue(
                    config_id=config.id,
                    test_name=config.test_name,
                    severity="CRITICAL",
                    message="Required test has neither a frequency nor a products-per-test threshold",
                ))
        return issues

    def _require_machine(self, machine_id: int):
        machine = self._machine_repo.get_by_id(machine_id)
        if not machine:
            raise EntityNotFoundException("Machine", machine_id)
        return machine
