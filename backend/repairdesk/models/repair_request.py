"""
RepairDesk Backend — RepairRequest SQLAlchemy Model
====================================================

What:  ORM model for the `repair_requests` table.
Who:   Written by SqlRecordStore; read by Alembic for migrations.

Table Design:
    - id, created_at: assigned by the store on insert, never changed by
      this service afterwards
    - voice_recording_url / photo_url: public URLs of uploaded media, NULL
      when the customer attached nothing (never a placeholder)
    - status: single workflow field; only `pending` is written here, the
      later transitions belong to the back office
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from repairdesk.database import Base


class RepairRequest(Base):
    """One customer repair request."""

    __tablename__ = "repair_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Store-assigned identifier",
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)

    # Key from catalog.PHONE_MODELS, e.g. "iphone-15"
    phone_model: Mapped[str] = mapped_column(String(100), nullable=False)

    issue_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    voice_recording_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # low | medium | high
    urgency: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")

    # pending | in_progress | completed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        comment="Store-assigned creation time (UTC)",
    )

    def __repr__(self) -> str:
        return (
            f"<RepairRequest(id={self.id}, phone_model='{self.phone_model}', "
            f"urgency='{self.urgency}', status='{self.status}')>"
        )


# Newest-first listing by the back office
Index("idx_repair_requests_created_at", RepairRequest.created_at.desc())
