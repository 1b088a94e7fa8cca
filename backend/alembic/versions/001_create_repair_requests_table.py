"""Create repair_requests table

Revision ID: 001
Revises: None
Create Date: 2025-01-20 00:00:00.000000+00:00

What:  Creates the `repair_requests` table, one row per submitted intake form.
How:   PostgreSQL UUID primary key generated by the database, timestamps
       with time zone, and a created_at DESC index for newest-first listing.

Rollback: downgrade() drops the table entirely (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "repair_requests",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
            comment="Store-assigned identifier",
        ),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column(
            "phone_model",
            sa.String(100),
            nullable=False,
            comment="Device key from the phone model catalog",
        ),
        sa.Column("issue_description", sa.Text(), nullable=True),

        # Public URLs of uploaded media; NULL when nothing was attached
        sa.Column("voice_recording_url", sa.Text(), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),

        sa.Column(
            "urgency",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'medium'"),
            comment="low, medium or high",
        ),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment="pending, in_progress or completed",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Store-assigned creation time (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "urgency IN ('low', 'medium', 'high')",
            name="ck_repair_requests_urgency",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed')",
            name="ck_repair_requests_status",
        ),
    )

    op.create_index(
        "idx_repair_requests_created_at",
        "repair_requests",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    # Destructive: every stored repair request is lost
    op.drop_index("idx_repair_requests_created_at", table_name="repair_requests")
    op.drop_table("repair_requests")
