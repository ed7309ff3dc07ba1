"""
Module: bizops_kernel.models.payment
Responsibility: ORM persistence for partner payments.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - status moves DRAFT -> PENDING -> APPROVED -> PAID, one step at a time.
      Enforced by domain/validation.py before the mutation, not here.
    - total_amount = amount + tax, recomputed by the payment validator.
    - Soft delete only.

Audit relevance:
    Payments are the most frequently queried audit history
    (AuditTrailSelector.entity_history).
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString


class PaymentStatus(str, Enum):
    """
    Payment lifecycle.

    Contract: Each status may only advance to the next one; PAID is final.
    """

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"


PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.DRAFT: frozenset({PaymentStatus.PENDING}),
    PaymentStatus.PENDING: frozenset({PaymentStatus.APPROVED}),
    PaymentStatus.APPROVED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset(),
}


class Payment(SoftDeleteMixin, TrackedBase):
    """A payment owed to a partner within one business unit."""

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payment_business", "business_id"),
        Index("idx_payment_partner", "partner_id"),
        Index("idx_payment_status", "status"),
    )

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id"),
        nullable=False,
    )

    partner_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("partners.id"),
        nullable=True,
    )

    customer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.DRAFT.value,
    )

    # Whole currency units
    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    tax: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    total_amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    payment_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    # e.g. "2026-10"
    period: Mapped[str | None] = mapped_column(
        String(7),
        nullable=True,
    )

    due_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    paid_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    note: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Payment {self.id} {self.status} {self.total_amount}>"
