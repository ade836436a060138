"""Stored Analysis ORM — one row per metaphor, the record itself as a JSON payload.

Invariants:
    - metaphor is the primary key (the store's natural key)
    - payload is the camelCase StoredMetaphorAnalysis wire dict, never a partial record
    - Rows are rewritten together by SqlAlchemyStoreRepository.replace_all

Design Decisions:
    - JSON column over normalized tables: the record is read and replaced as a whole,
      and exports are the same shape (ADR: simplicity, no join on every read)
    - updated_at is informational only; ordering uses the payload timestamp
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from metaphornik.db.base import Base


class StoredAnalysisRow(Base):
    """Persisted StoredMetaphorAnalysis."""
    __tablename__ = "stored_analyses"

    metaphor: Mapped[str] = mapped_column(Text, primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
