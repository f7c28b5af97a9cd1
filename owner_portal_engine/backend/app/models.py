# backend/app/models.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class RecordRow(Base):
    """
    Keyed JSON document per (collection, key).

    Collections:
      - properties:              property directory (name, is_admin_owned, commission_rate)
      - compliance_submissions:  submissions recorded by the engine (upstream or local fallback)

    property_id is copied out of the payload on write so per-property reads stay indexed.
    """

    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint("collection", "key", name="uq_records_collection_key"),
        Index("ix_records_collection_property", "collection", "property_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    collection: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(200), nullable=False)
    property_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
