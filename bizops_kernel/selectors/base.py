"""
Module: bizops_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors, plus the
    shared soft-delete and partner-scope predicates every read path applies.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/ values.  Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit(), or session.flush().
    - Soft-deleted rows are invisible on every read path that uses
      apply_visibility().
    - A partner scope narrows by business_id, and by partner_id where the
      model has that column.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy import Select, false
from sqlalchemy.orm import Session

from bizops_kernel.db.base import Base
from bizops_kernel.domain.decision import ScopeFilter

ModelType = TypeVar("ModelType", bound=Base)


def apply_soft_delete_filter(stmt: Select, model: type) -> Select:
    """Exclude tombstoned rows for models that support soft delete."""
    if hasattr(model, "deleted_at"):
        stmt = stmt.where(model.deleted_at.is_(None))
    return stmt


def apply_scope(stmt: Select, model: type, scope: ScopeFilter | None) -> Select:
    """
    Narrow a query to a partner scope.

    A model with neither business_id nor partner_id cannot be scoped and
    yields no rows for a scoped reader.
    """
    if scope is None:
        return stmt

    scoped = False
    if hasattr(model, "business_id"):
        stmt = stmt.where(model.business_id.in_(scope.business_ids))
        scoped = True
    if hasattr(model, "partner_id") and scope.partner_id is not None:
        stmt = stmt.where(model.partner_id == scope.partner_id)
        scoped = True
    if not scoped:
        stmt = stmt.where(false())
    return stmt


def apply_visibility(stmt: Select, model: type, scope: ScopeFilter | None) -> Select:
    return apply_scope(apply_soft_delete_filter(stmt, model), model, scope)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return rows, DTOs or computed results.

    Non-goals:
        - BaseSelector does NOT define any query methods.
    """

    def __init__(self, session: Session):
        self.session = session
