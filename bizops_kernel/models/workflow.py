"""
Module: bizops_kernel.models.workflow
Responsibility: ORM persistence for workflow templates.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString


class WorkflowTemplate(SoftDeleteMixin, TrackedBase):
    """
    A reusable workflow definition.

    Contract:
        steps is an ordered list of {"title", "assignee_role"} dicts and is
        captured whole in every data version.
    """

    __tablename__ = "workflow_templates"

    __table_args__ = (
        Index("idx_workflow_template_business", "business_id"),
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

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    steps: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<WorkflowTemplate {self.name}>"
