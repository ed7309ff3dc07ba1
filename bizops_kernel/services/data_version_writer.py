"""
Data Version Writer.

Responsibility:
    Append a full, denormalized snapshot of a record after each CREATE or
    UPDATE, numbered per record.

Architecture position:
    Kernel > Services.  Flushes only.

Invariants enforced:
    - version = max(version) + 1 for the same (entity, entity_id), starting
      at 1.  The unique constraint rejects a concurrent duplicate.
    - Only CREATE and UPDATE produce versions.
    - data is a complete snapshot, never a diff.

Failure modes:
    - AuditContractError for any other change type.
    - IntegrityError when a concurrent writer took the same version number.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bizops_kernel.domain.clock import Clock, SystemClock
from bizops_kernel.exceptions import AuditContractError
from bizops_kernel.logging_config import get_logger
from bizops_kernel.models.data_version import ChangeType, DataVersion
from bizops_kernel.services.base import BaseService
from bizops_kernel.utils.serialization import to_json_safe

logger = get_logger("services.data_version_writer")


class DataVersionWriter(BaseService[DataVersion]):
    """Appends data versions."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def next_version(self, entity: str, entity_id: UUID) -> int:
        current = self.session.execute(
            select(func.max(DataVersion.version)).where(
                DataVersion.entity == entity,
                DataVersion.entity_id == entity_id,
            )
        ).scalar()
        return (current or 0) + 1

    def create(
        self,
        *,
        entity: str,
        entity_id: UUID,
        data: dict,
        changed_by: UUID | None,
        change_type: ChangeType | str,
    ) -> DataVersion:
        """
        Append a data version.

        Raises:
            AuditContractError: If change_type is not CREATE or UPDATE.
        """
        try:
            change_type = ChangeType(change_type)
        except ValueError:
            raise AuditContractError(
                str(change_type), "data versions are only recorded for CREATE and UPDATE"
            ) from None

        version = DataVersion(
            entity=entity,
            entity_id=entity_id,
            version=self.next_version(entity, entity_id),
            data=to_json_safe(data),
            changed_by=changed_by,
            change_type=change_type.value,
            created_at=self._clock.now(),
        )
        self.session.add(version)
        self.session.flush()

        logger.info(
            "data_version_created",
            extra={
                "version_id": str(version.id),
                "versioned_entity": entity,
                "versioned_entity_id": str(entity_id),
                "version": version.version,
                "change_type": change_type.value,
            },
        )
        return version
