"""
Module: bizops_kernel.models.budget
Responsibility: ORM persistence for per-period expense budgets.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Hard delete.  Budgets carry no tombstone; a DELETE removes the row and
      only the audit entry's before snapshot remains.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import TrackedBase, UUIDString


class Budget(TrackedBase):
    """A spending budget for one category and period, optionally per business."""

    __tablename__ = "budgets"

    __table_args__ = (
        Index("idx_budget_period", "period"),
    )

    business_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id"),
        nullable=True,
    )

    category: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    period: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    note: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Budget {self.category} {self.period}: {self.amount}>"
