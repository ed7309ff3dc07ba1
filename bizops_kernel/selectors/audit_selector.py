"""
Module: bizops_kernel.selectors.audit_selector
Responsibility: Read-only access to the audit trail.  Converts audit rows to
    frozen DTOs enriched with the acting user's display name.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - Read-only.
    - entity_history() is ordered newest first, ties broken by id.

Failure modes:
    - Returns an empty list when nothing matches (never raises on absence).

Audit relevance:
    Answers "who changed entity E" and "what did user U do".  Rows whose user
    was deleted stay readable and are labelled "unknown".
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bizops_kernel.models.audit_log import AuditAction, AuditLogEntry
from bizops_kernel.models.user import User
from bizops_kernel.selectors.base import BaseSelector

SYSTEM_ACTOR = "system"
UNKNOWN_ACTOR = "unknown"


@dataclass(frozen=True)
class AuditTrailItem:
    """Data transfer object for one audit log row."""

    id: UUID
    action: AuditAction
    entity: str
    entity_id: UUID
    user_id: UUID | None
    user_name: str
    before: dict | None
    after: dict | None
    ip_address: str | None
    created_at: datetime


class AuditTrailSelector(BaseSelector[AuditLogEntry]):
    """
    Selector for audit trail queries.

    Guarantees:
        - Read-only.
        - Every item carries a user_name ("system" when no user acted,
          "unknown" when the user row no longer exists).
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _base_query(self):
        return select(AuditLogEntry, User.name).outerjoin(
            User, AuditLogEntry.user_id == User.id
        )

    def _to_dto(self, entry: AuditLogEntry, user_name: str | None) -> AuditTrailItem:
        if entry.user_id is None:
            label = SYSTEM_ACTOR
        elif user_name is None:
            label = UNKNOWN_ACTOR
        else:
            label = user_name
        return AuditTrailItem(
            id=entry.id,
            action=AuditAction(entry.action),
            entity=entry.entity,
            entity_id=entry.entity_id,
            user_id=entry.user_id,
            user_name=label,
            before=entry.before,
            after=entry.after,
            ip_address=entry.ip_address,
            created_at=entry.created_at,
        )

    def entity_history(
        self, entity: str, entity_id: UUID, limit: int = 50
    ) -> list[AuditTrailItem]:
        """Audit rows for one record, newest first."""
        stmt = (
            self._base_query()
            .where(AuditLogEntry.entity == entity, AuditLogEntry.entity_id == entity_id)
            .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
            .limit(limit)
        )
        return [self._to_dto(entry, name) for entry, name in self.session.execute(stmt).all()]

    def actions_by_user(
        self,
        user_id: UUID,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[AuditTrailItem]:
        """Audit rows written on behalf of one user, newest first."""
        stmt = self._base_query().where(AuditLogEntry.user_id == user_id)
        if since is not None:
            stmt = stmt.where(AuditLogEntry.created_at >= since)
        stmt = stmt.order_by(
            AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc()
        ).limit(limit)
        return [self._to_dto(entry, name) for entry, name in self.session.execute(stmt).all()]
