"""
Module: bizops_kernel.models.audit_log
Responsibility: ORM persistence for the append-only audit log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only; no UPDATE or DELETE (ORM listener + DB trigger).
    - before is None for CREATE; after is None for DELETE and SOFT_DELETE.
      Validated by AuditLogWriter before the row is added.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.

Audit relevance:
    AuditLogEntry IS the accountability record.  It answers "what actions did
    user U take" and "who changed entity E", including soft deletes, whose
    before snapshot is the only full copy of the pre-deletion state.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Mutating actions recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    SOFT_DELETE = "SOFT_DELETE"
    DELETE = "DELETE"


class AuditLogEntry(Base):
    """
    One recorded mutation.

    Contract:
        Rows are written once by AuditLogWriter and never changed.

    Guarantees:
        - entity + entity_id identify the mutated record.
        - user_id is None only for system-originated changes.

    Non-goals:
        - No retention or pruning.  Rows live forever as far as this kernel
          is concerned.
    """

    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_log_entity", "entity", "entity_id"),
        Index("idx_audit_log_user", "user_id"),
        Index("idx_audit_log_created", "created_at"),
    )

    user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    # Entity type name, e.g. "Customer"
    entity: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    entity_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    before: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    after: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    # Request metadata, all optional
    method: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
    )

    path: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    ip_address: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    user_agent: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action} {self.entity}:{self.entity_id}>"
