"""
Module: bizops_kernel.models.user
Responsibility: ORM persistence for user accounts (the durable source of
    every Principal).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - email is unique.
    - role is stored as its string tag; unknown tags are rejected when the
      row is turned into a Principal, never here.

Audit relevance:
    The Principal Resolver re-reads this row on every request, so flipping
    is_active to False revokes access immediately.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import TrackedBase


class User(TrackedBase):
    """
    A login account.

    Contract:
        role and is_active are read fresh for every request.

    Non-goals:
        - Credential storage.  Password hashing and session issuance belong
          to the session verifier, outside this kernel.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        Index("idx_user_role", "role"),
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Role tag: PARTNER, MEMBER, MANAGER, ADMIN
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="MEMBER",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
