"""store alert thresholds in the unit of their alert type

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 15:10:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("production_alerts") as batch_op:
        batch_op.alter_column("threshold", existing_type=sa.Integer(), type_=sa.Float(), existing_nullable=False)
        batch_op.add_column(sa.Column("measured_value", sa.Float(), nullable=False, server_default="0"))


def downgrade() -> None:
    with op.batch_alter_table("production_alerts") as batch_op:
        batch_op.drop_column("measured_value")
        batch_op.alter_column("threshold", existing_type=sa.Float(), type_=sa.Integer(), existing_nullable=False)
