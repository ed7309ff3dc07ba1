"""
Soft-delete aware entity reads.

Responsibility:
    The findFirst / findMany read paths for business entities.  Every query
    hides tombstoned rows and applies the caller's partner scope, so a
    soft-deleted row and an out-of-scope row both read as "not found".
"""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import select

from bizops_kernel.domain.decision import ScopeFilter
from bizops_kernel.selectors.base import BaseSelector, apply_visibility


class EntitySelector(BaseSelector):
    """Read-only lookup of any registered entity model."""

    def find_first(
        self,
        model: type,
        entity_id: UUID,
        scope: ScopeFilter | None = None,
    ) -> Any | None:
        """
        Return the live row with this id, or None.

        None covers missing, soft-deleted and out-of-scope alike.
        """
        stmt = apply_visibility(select(model).where(model.id == entity_id), model, scope)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_many(
        self,
        model: type,
        scope: ScopeFilter | None = None,
        order_by: Sequence[Any] | None = None,
        limit: int | None = None,
    ) -> list[Any]:
        stmt = apply_visibility(select(model), model, scope)
        if order_by:
            stmt = stmt.order_by(*order_by)
        else:
            stmt = stmt.order_by(model.created_at.desc(), model.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())
