"""AuditEntryRow ORM — append-only audit trail of attempted mutations.

Invariants:
    - One row per evaluate call (accepted, rejected or error)
    - Rows are only ever inserted

Design Decisions:
    - violations / writes as JSON: the audit consumer renders them, nothing queries into them
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from rulebook.db.base import Base


class AuditEntryRow(Base):
    """Persisted audit entry."""
    __tablename__ = "audit_entries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    kind: Mapped[str] = mapped_column(String(32))
    operation: Mapped[str] = mapped_column(String(16))
    target_id: Mapped[str] = mapped_column(String(64), index=True)
    outcome: Mapped[str] = mapped_column(String(16))
    stage: Mapped[str | None] = mapped_column(String(32))
    violations: Mapped[list[dict[str, Any]]] = mapped_column(default=list)
    writes: Mapped[list[dict[str, Any]]] = mapped_column(default=list)
    error: Mapped[str | None] = mapped_column(String(128))
    recorded_at: Mapped[datetime]
