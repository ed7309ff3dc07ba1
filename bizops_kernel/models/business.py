"""
Module: bizops_kernel.models.business
Responsibility: ORM persistence for business units, the tenancy boundary
    that partner scoping is expressed in.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import TrackedBase


class Business(TrackedBase):
    """A business unit. Every scoped record carries a business_id."""

    __tablename__ = "businesses"

    __table_args__ = (
        UniqueConstraint("code", name="uq_business_code"),
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<Business {self.code}: {self.name}>"
