"""
Module: bizops_kernel.models.partner
Responsibility: ORM persistence for external partners and their grant
    tables (partner-to-business and partner-to-content).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one PartnerBusiness row per (partner, business).
    - At most one PartnerContentGrant row per
      (partner, business, content_type, permission_level).

Failure modes:
    - Grant rows may carry content_type / permission_level strings that are
      not known tags.  They are stored as-is and skipped by the Partner
      Access Resolver.

Audit relevance:
    Grants are the input to every partner access decision.  Grant changes go
    through PartnerAccessAdminService so they land in the audit log as an
    UPDATE of the owning Partner.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizops_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString


class Partner(SoftDeleteMixin, TrackedBase):
    """
    An external collaborator, optionally linked to a PARTNER-role user.

    Contract:
        A partner with deleted_at set or is_active False grants nothing.
    """

    __tablename__ = "partners"

    __table_args__ = (
        Index("idx_partner_user", "user_id"),
    )

    user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    company: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    business_grants: Mapped[list["PartnerBusiness"]] = relationship(
        back_populates="partner",
        order_by="PartnerBusiness.created_at",
    )

    content_grants: Mapped[list["PartnerContentGrant"]] = relationship(
        back_populates="partner",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Partner {self.name}>"


class PartnerBusiness(TrackedBase):
    """Grants a partner visibility of one business; can_edit widens to writes."""

    __tablename__ = "partner_businesses"

    __table_args__ = (
        UniqueConstraint("partner_id", "business_id", name="uq_partner_business"),
        Index("idx_partner_business_active", "partner_id", "is_active"),
    )

    partner_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("partners.id"),
        nullable=False,
    )

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id"),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    can_edit: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    partner: Mapped[Partner] = relationship(back_populates="business_grants")

    def __repr__(self) -> str:
        return (
            f"<PartnerBusiness partner={self.partner_id} business={self.business_id} "
            f"active={self.is_active} edit={self.can_edit}>"
        )


class PartnerContentGrant(TrackedBase):
    """Grants a partner a permission level on one content type within one business."""

    __tablename__ = "partner_content_grants"

    __table_args__ = (
        UniqueConstraint(
            "partner_id", "business_id", "content_type", "permission_level",
            name="uq_partner_content_grant",
        ),
        Index("idx_partner_content_partner", "partner_id"),
    )

    partner_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("partners.id"),
        nullable=False,
    )

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id"),
        nullable=False,
    )

    # Free-form in storage, validated against ContentType on read
    content_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    permission_level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="view",
    )

    partner: Mapped[Partner] = relationship(back_populates="content_grants")

    def __repr__(self) -> str:
        return (
            f"<PartnerContentGrant partner={self.partner_id} "
            f"{self.content_type}:{self.permission_level}>"
        )
