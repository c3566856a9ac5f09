"""add quality gate configs, quality test records and production alerts

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 09:40:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "quality_gate_configs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False),
        sa.Column("test_name", sa.String(length=255), nullable=False),
        sa.Column("test_description", sa.Text(), nullable=True),
        sa.Column("test_frequency_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("products_per_test", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("block_production", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("min_pass_rate", sa.Float(), nullable=False, server_default="95"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("test_frequency_hours >= 0", name="ck_quality_gate_configs_frequency_non_negative"),
        sa.CheckConstraint("products_per_test >= 0", name="ck_quality_gate_configs_products_non_negative"),
        sa.CheckConstraint(
            "min_pass_rate >= 0 AND min_pass_rate <= 100",
            name="ck_quality_gate_configs_min_pass_rate_range",
        ),
    )
    op.create_index("ix_quality_gate_configs_machine_id", "quality_gate_configs", ["machine_id"], unique=False)
    op.create_index(
        "ix_quality_gate_configs_machine_active", "quality_gate_configs", ["machine_id", "is_active"], unique=False
    )

    op.create_table(
        "quality_test_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "config_id", sa.Integer(), sa.ForeignKey("quality_gate_configs.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("operator_id", sa.Integer(), nullable=True),
        sa.Column("test_date", sa.DateTime(), nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_quality_test_records_machine_id", "quality_test_records", ["machine_id"], unique=False)
    op.create_index("ix_quality_test_records_config_id", "quality_test_records", ["config_id"], unique=False)
    op.create_index(
        "ix_quality_test_records_gate_date",
        "quality_test_records",
        ["machine_id", "config_id", "test_date"],
        unique=False,
    )

    op.create_table(
        "production_alerts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "config_id", sa.Integer(), sa.ForeignKey("quality_gate_configs.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("alert_type", sa.String(length=30), nullable=False),
        sa.Column("production_count_at_trigger", sa.Integer(), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False),
        sa.Column("severity", sa.String(length=10), nullable=False),
        sa.Column("target_roles", sa.String(length=100), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("resolution", sa.String(length=20), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("severity IN ('MEDIUM', 'HIGH')", name="ck_production_alerts_severity"),
        sa.CheckConstraint("alert_type IN ('FREQUENCY', 'PRODUCTS_PER_TEST')", name="ck_production_alerts_type"),
        sa.CheckConstraint(
            "resolution IS NULL OR resolution IN ('ACKNOWLEDGED', 'TEST_PASSED')",
            name="ck_production_alerts_resolution",
        ),
    )
    op.create_index(
        "ix_production_alerts_machine_active", "production_alerts", ["machine_id", "is_active"], unique=False
    )
    op.create_index(
        "uq_production_alerts_active_gate",
        "production_alerts",
        ["machine_id", "config_id"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active = true"),
    )


def downgrade() -> None:
    op.drop_index("uq_production_alerts_active_gate", table_name="production_alerts")
    op.drop_index("ix_production_alerts_machine_active", table_name="production_alerts")
    op.drop_table("production_alerts")

    op.drop_index("ix_quality_test_records_gate_date", table_name="quality_test_records")
    op.drop_index("ix_quality_test_records_config_id", table_name="quality_test_records")
    op.drop_index("ix_quality_test_records_machine_id", table_name="quality_test_records")
    op.drop_table("quality_test_records")

    op.drop_index("ix_quality_gate_configs_machine_active", table_name="quality_gate_configs")
    op.drop_index("ix_quality_gate_configs_machine_id", table_name="quality_gate_configs")
    op.drop_table("quality_gate_configs")
