"""create machines, shift teams and shift ledger tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 08:12:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "machines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="STOPPED"),
        sa.Column("production_speed", sa.Float(), nullable=False, server_default="0"),
        sa.Column("target_production", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "status IN ('STOPPED', 'RUNNING', 'MAINTENANCE', 'ERROR', 'OFF_SHIFT')",
            name="ck_machines_status",
        ),
        sa.CheckConstraint("production_speed >= 0", name="ck_machines_production_speed_non_negative"),
        sa.CheckConstraint("target_production >= 0", name="ck_machines_target_production_non_negative"),
    )
    op.create_index("ix_machines_code", "machines", ["code"], unique=True)

    op.create_table(
        "shift_teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("team_code", sa.String(length=10), nullable=False),
        sa.Column("phase_offset", sa.Integer(), nullable=False),
        sa.Column("cycle_length", sa.Integer(), nullable=False, server_default="12"),
        sa.Column("reference_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("phase_offset >= 0 AND phase_offset <= 3", name="ck_shift_teams_phase_offset_range"),
        sa.CheckConstraint("cycle_length > 0", name="ck_shift_teams_cycle_length_positive"),
    )
    op.create_index("ix_shift_teams_team_code", "shift_teams", ["team_code"], unique=True)

    op.create_table(
        "shift_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("shift_type", sa.String(length=10), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("team_code", sa.String(length=10), nullable=True),
        sa.Column("rotation_day", sa.Integer(), nullable=True),
        sa.Column("total_production", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rejected_production", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("target_production", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("run_minutes", sa.Float(), nullable=False, server_default="0"),
        sa.Column("downtime_minutes", sa.Float(), nullable=False, server_default="0"),
        sa.Column("efficiency", sa.Float(), nullable=False, server_default="0"),
        sa.Column("quality_tests_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("approved_tests_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("shift_type IN ('DAY', 'NIGHT')", name="ck_shift_records_shift_type"),
        sa.CheckConstraint("total_production >= 0", name="ck_shift_records_total_production_non_negative"),
        sa.CheckConstraint(
            "rejected_production >= 0 AND rejected_production <= total_production",
            name="ck_shift_records_rejected_within_total",
        ),
        sa.CheckConstraint("run_minutes >= 0", name="ck_shift_records_run_minutes_non_negative"),
        sa.CheckConstraint("downtime_minutes >= 0", name="ck_shift_records_downtime_non_negative"),
        sa.CheckConstraint("end_time > start_time", name="ck_shift_records_window"),
    )
    op.create_index("ix_shift_records_machine_id", "shift_records", ["machine_id"], unique=False)
    op.create_index("ix_shift_records_operator_id", "shift_records", ["operator_id"], unique=False)
    op.create_index("ix_shift_records_shift_date", "shift_records", ["shift_date"], unique=False)
    op.create_index(
        "ix_shift_records_machine_window", "shift_records", ["machine_id", "start_time", "end_time"], unique=False
    )
    op.create_index("ix_shift_records_open", "shift_records", ["machine_id", "operator_id", "is_archived"], unique=False)
    op.create_index(
        "uq_shift_records_open_per_operator_day",
        "shift_records",
        ["machine_id", "operator_id", "shift_date"],
        unique=True,
        sqlite_where=sa.text("is_archived = 0"),
        postgresql_where=sa.text("is_archived = false"),
    )

    op.create_table(
        "production_deltas",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column(
            "shift_record_id", sa.Integer(), sa.ForeignKey("shift_records.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("units", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rejected_units", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("run_minutes", sa.Float(), nullable=False, server_default="0"),
        sa.Column("downtime_minutes", sa.Float(), nullable=False, server_default="0"),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("units >= 0", name="ck_production_deltas_units_non_negative"),
        sa.CheckConstraint(
            "rejected_units >= 0 AND rejected_units <= units",
            name="ck_production_deltas_rejected_within_units",
        ),
        sa.CheckConstraint("run_minutes >= 0", name="ck_production_deltas_run_non_negative"),
        sa.CheckConstraint("downtime_minutes >= 0", name="ck_production_deltas_downtime_non_negative"),
    )
    op.create_index("ix_production_deltas_shift_record_id", "production_deltas", ["shift_record_id"], unique=False)
    op.create_index(
        "ix_production_deltas_machine_recorded_at", "production_deltas", ["machine_id", "recorded_at"], unique=False
    )

    op.create_table(
        "production_archives",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "shift_record_id", sa.Integer(), sa.ForeignKey("shift_records.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id"), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("archived_data", sa.Text(), nullable=False),
        sa.Column("data_size", sa.Integer(), nullable=False),
        sa.Column("checksum", sa.String(length=64), nullable=False),
        sa.Column("archived_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("shift_record_id", name="uq_production_archives_shift_record_id"),
    )
    op.create_index("ix_production_archives_machine_id", "production_archives", ["machine_id"], unique=False)
    op.create_index("ix_production_archives_operator_id", "production_archives", ["operator_id"], unique=False)
    op.create_index("ix_production_archives_archived_at", "production_archives", ["archived_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_production_archives_archived_at", table_name="production_archives")
    op.drop_index("ix_production_archives_operator_id", table_name="production_archives")
    op.drop_index("ix_production_archives_machine_id", table_name="production_archives")
    op.drop_table("production_archives")

    op.drop_index("ix_production_deltas_machine_recorded_at", table_name="production_deltas")
    op.drop_index("ix_production_deltas_shift_record_id", table_name="production_deltas")
    op.drop_table("production_deltas")

    op.drop_index("uq_shift_records_open_per_operator_day", table_name="shift_records")
    op.drop_index("ix_shift_records_open", table_name="shift_records")
    op.drop_index("ix_shift_records_machine_window", table_name="shift_records")
    op.drop_index("ix_shift_records_shift_date", table_name="shift_records")
    op.drop_index("ix_shift_records_operator_id", table_name="shift_records")
    op.drop_index("ix_shift_records_machine_id", table_name="shift_records")
    op.drop_table("shift_records")

    op.drop_index("ix_shift_teams_team_code", table_name="shift_teams")
    op.drop_table("shift_teams")

    op.drop_index("ix_machines_code", table_name="machines")
    op.drop_table("machines")
