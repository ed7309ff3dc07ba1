"""
Module: bizops_kernel.models.registry
Responsibility: The entity catalog.  Maps the entity type names used in
    policies, audit rows and data versions to their ORM classes and snapshot
    hooks.
Architecture position: Kernel > Models.  May import from db/, models/ and
    utils/.

Invariants enforced:
    - Entity names are exactly the strings written to audit_logs.entity and
      data_versions.entity.
    - Unknown names raise UnknownEntityError; there is no fallback.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from bizops_kernel.exceptions import UnknownEntityError
from bizops_kernel.models.budget import Budget
from bizops_kernel.models.customer import Customer
from bizops_kernel.models.partner import Partner
from bizops_kernel.models.payment import Payment
from bizops_kernel.models.workflow import WorkflowTemplate
from bizops_kernel.utils.serialization import row_snapshot


def partner_snapshot(partner: Partner) -> dict:
    """Partner row plus its business and content grants, in a stable order."""
    data = row_snapshot(partner)
    data["business_grants"] = sorted(
        (
            {
                "business_id": str(g.business_id),
                "is_active": g.is_active,
                "can_edit": g.can_edit,
            }
            for g in partner.business_grants
        ),
        key=lambda g: g["business_id"],
    )
    data["content_grants"] = sorted(
        (
            {
                "business_id": str(g.business_id),
                "content_type": g.content_type,
                "permission_level": g.permission_level,
            }
            for g in partner.content_grants
        ),
        key=lambda g: (g["business_id"], g["content_type"], g["permission_level"]),
    )
    return data


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Catalog entry for one mutable entity type.

    Guarantees:
        - snapshot(obj) returns plain JSON describing the full record.
    """

    name: str
    model: type
    snapshot: Callable[[Any], dict] = field(default=row_snapshot)

    @property
    def supports_soft_delete(self) -> bool:
        return hasattr(self.model, "deleted_at")


ENTITY_REGISTRY: dict[str, EntityDescriptor] = {
    d.name: d
    for d in (
        EntityDescriptor("Customer", Customer),
        EntityDescriptor("Payment", Payment),
        EntityDescriptor("Budget", Budget),
        EntityDescriptor("WorkflowTemplate", WorkflowTemplate),
        EntityDescriptor("Partner", Partner, snapshot=partner_snapshot),
    )
}


def get_entity(name: str) -> EntityDescriptor:
    """Look up an entity type by name."""
    try:
        return ENTITY_REGISTRY[name]
    except KeyError:
        raise UnknownEntityError(name) from None


def registered_entities() -> frozenset[str]:
    return frozenset(ENTITY_REGISTRY)
