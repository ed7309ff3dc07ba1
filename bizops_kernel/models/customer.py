"""
Module: bizops_kernel.models.customer
Responsibility: ORM persistence for customers.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Soft delete only.  A deleted customer keeps its row so the audit
      trail and version history stay resolvable.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString


class Customer(SoftDeleteMixin, TrackedBase):
    """A customer owned by one business unit."""

    __tablename__ = "customers"

    __table_args__ = (
        Index("idx_customer_business", "business_id"),
        Index("idx_customer_deleted", "deleted_at"),
    )

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    phone: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    note: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Customer {self.name}>"
