"""
Module: bizops_kernel.selectors.version_selector
Responsibility: Read-only access to data versions -- the full history of a
    record and its state at a point in time.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - history() is ordered by version ascending.
    - state_as_of() never returns a version created after as_of.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from bizops_kernel.models.data_version import ChangeType, DataVersion
from bizops_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class VersionDTO:
    """Data transfer object for one data version."""

    id: UUID
    entity: str
    entity_id: UUID
    version: int
    data: dict
    changed_by: UUID | None
    change_type: ChangeType
    created_at: datetime


def _to_dto(row: DataVersion) -> VersionDTO:
    return VersionDTO(
        id=row.id,
        entity=row.entity,
        entity_id=row.entity_id,
        version=row.version,
        data=row.data,
        changed_by=row.changed_by,
        change_type=ChangeType(row.change_type),
        created_at=row.created_at,
    )


class DataVersionSelector(BaseSelector[DataVersion]):
    """Selector for record history."""

    def history(self, entity: str, entity_id: UUID) -> list[VersionDTO]:
        stmt = (
            select(DataVersion)
            .where(DataVersion.entity == entity, DataVersion.entity_id == entity_id)
            .order_by(DataVersion.version)
        )
        return [_to_dto(row) for row in self.session.execute(stmt).scalars().all()]

    def latest(self, entity: str, entity_id: UUID) -> VersionDTO | None:
        stmt = (
            select(DataVersion)
            .where(DataVersion.entity == entity, DataVersion.entity_id == entity_id)
            .order_by(DataVersion.version.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        return _to_dto(row) if row is not None else None

    def state_as_of(
        self, entity: str, entity_id: UUID, as_of: datetime
    ) -> VersionDTO | None:
        """
        The newest version created at or before as_of.

        Returns None if the record had no version yet at that time.
        """
        stmt = (
            select(DataVersion)
            .where(
                DataVersion.entity == entity,
                DataVersion.entity_id == entity_id,
                DataVersion.created_at <= as_of,
            )
            .order_by(DataVersion.version.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        return _to_dto(row) if row is not None else None
