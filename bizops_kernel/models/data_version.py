"""
Module: bizops_kernel.models.data_version
Responsibility: ORM persistence for point-in-time entity snapshots.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only; no UPDATE or DELETE (ORM listener + DB trigger).
    - (entity, entity_id, version) is unique; version starts at 1 and grows
      by one per snapshot of the same record.
    - data is a full snapshot, never a diff.

Audit relevance:
    Each row alone answers "what did entity E look like after change N",
    without replaying earlier rows.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import Base, UUIDString


class ChangeType(str, Enum):
    """Mutations that produce a data version.  Deletions never do."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"


class DataVersion(Base):
    """An immutable full-state snapshot of one record after one change."""

    __tablename__ = "data_versions"

    __table_args__ = (
        UniqueConstraint("entity", "entity_id", "version", name="uq_data_version"),
        Index("idx_data_version_entity", "entity", "entity_id"),
        Index("idx_data_version_created", "created_at"),
    )

    entity: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    entity_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    data: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
    )

    changed_by: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    change_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DataVersion {self.entity}:{self.entity_id} v{self.version}>"
