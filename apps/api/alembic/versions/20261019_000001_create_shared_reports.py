"""create shared_reports

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    payload_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
    op.create_table(
        "shared_reports",
        sa.Column("short_id", sa.Text(), nullable=False),
        sa.Column("audit_result", payload_type, nullable=False),
        sa.Column("lighthouse_data", payload_type, nullable=True),
        sa.Column("website", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("short_id"),
    )
    op.create_index("ix_shared_reports_expires_at", "shared_reports", ["expires_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_shared_reports_expires_at", table_name="shared_reports")
    op.drop_table("shared_reports")
