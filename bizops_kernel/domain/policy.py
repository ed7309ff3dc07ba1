"""
Declarative per-operation access policy.

Responsibility:
    Runtime values describing, per entity type, which content type gates it,
    whether it is soft-deleted and versioned, and the minimum role for each
    mutating action.  Also the atomicity mode of the Entity Mutation Facade.

Architecture position:
    Kernel > Domain -- pure values.  Built by ``bizops_config`` from YAML;
    the kernel never reads configuration files itself.

Invariants enforced:
    - An action missing from an entity's operations is refused.
    - Lookups of entities missing from the policy raise UnknownEntityError.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from bizops_kernel.domain.roles import ContentType, Role
from bizops_kernel.exceptions import UnknownEntityError
from bizops_kernel.models.audit_log import AuditAction


class Atomicity(str, Enum):
    """
    How the primary mutation, audit write and version write are committed.

    INDEPENDENT: three separate commits; audit/version failures leave a
        reported gap and never revert the primary mutation.
    TRANSACTIONAL: one commit; any failure reverts all three.
    """

    INDEPENDENT = "independent"
    TRANSACTIONAL = "transactional"


@dataclass(frozen=True)
class OperationRule:
    action: AuditAction
    min_role: Role


@dataclass(frozen=True)
class EntityPolicy:
    """Access metadata for one entity type."""

    entity: str
    content_type: ContentType | None = None
    soft_delete: bool = False
    versioned: bool = True
    operations: Mapping[AuditAction, OperationRule] = field(default_factory=dict)

    def rule_for(self, action: AuditAction) -> OperationRule | None:
        return self.operations.get(action)


@dataclass(frozen=True)
class MutationSettings:
    atomicity: Atomicity = Atomicity.INDEPENDENT


@dataclass(frozen=True)
class AccessPolicySet:
    """
    A complete, validated policy.

    Guarantees:
        - checksum identifies the exact source document it was built from.
    """

    name: str
    version: int
    entities: Mapping[str, EntityPolicy]
    mutation: MutationSettings = field(default_factory=MutationSettings)
    checksum: str = ""

    def policy_for(self, entity: str) -> EntityPolicy:
        try:
            return self.entities[entity]
        except KeyError:
            raise UnknownEntityError(entity) from None
