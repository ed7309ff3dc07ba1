"""
Audit Log Writer.

Responsibility:
    Append one immutable AuditLogEntry per accepted mutation, with
    before/after snapshots and request metadata.

Architecture position:
    Kernel > Services.  Flushes only; the Entity Mutation Facade decides
    when the entry is committed.

Invariants enforced:
    - CREATE carries after and no before.
    - UPDATE carries both.
    - SOFT_DELETE and DELETE carry before and no after.  The before snapshot
      is what makes a deleted record reconstructible.
    - Snapshots are stored as plain JSON.

Failure modes:
    - AuditContractError when the snapshots do not fit the action.
    - SQLAlchemyError from flush propagates to the caller.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from bizops_kernel.domain.clock import Clock, SystemClock
from bizops_kernel.domain.request_metadata import EMPTY_REQUEST_METADATA, RequestMetadata
from bizops_kernel.exceptions import AuditContractError
from bizops_kernel.logging_config import get_logger
from bizops_kernel.models.audit_log import AuditAction, AuditLogEntry
from bizops_kernel.services.base import BaseService
from bizops_kernel.utils.serialization import to_json_safe

logger = get_logger("services.audit_log_writer")


def _check_contract(action: AuditAction, before: Any, after: Any) -> None:
    if action is AuditAction.CREATE:
        if before is not None:
            raise AuditContractError(action.value, "before must be omitted")
        if after is None:
            raise AuditContractError(action.value, "after is required")
    elif action is AuditAction.UPDATE:
        if before is None or after is None:
            raise AuditContractError(action.value, "before and after are required")
    else:
        if before is None:
            raise AuditContractError(action.value, "before is required")
        if after is not None:
            raise AuditContractError(action.value, "after must be omitted")


class AuditLogWriter(BaseService[AuditLogEntry]):
    """
    Appends audit log entries.

    Contract:
        write() validates, adds and flushes exactly one row.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def write(
        self,
        *,
        user_id: UUID | None,
        action: AuditAction | str,
        entity: str,
        entity_id: UUID,
        before: dict | None = None,
        after: dict | None = None,
        request_metadata: RequestMetadata | None = None,
    ) -> AuditLogEntry:
        """
        Append an audit entry.

        Raises:
            AuditContractError: If before/after do not fit the action.
        """
        try:
            action = AuditAction(action)
        except ValueError:
            raise AuditContractError(str(action), "unknown audit action") from None

        _check_contract(action, before, after)
        meta = request_metadata or EMPTY_REQUEST_METADATA

        entry = AuditLogEntry(
            user_id=user_id,
            action=action.value,
            entity=entity,
            entity_id=entity_id,
            before=to_json_safe(before) if before is not None else None,
            after=to_json_safe(after) if after is not None else None,
            method=meta.method,
            path=meta.path,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
            created_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_log_written",
            extra={
                "audit_entry_id": str(entry.id),
                "action": action.value,
                "audited_entity": entity,
                "audited_entity_id": str(entity_id),
            },
        )
        return entry
