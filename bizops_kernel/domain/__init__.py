"""Pure domain layer: values, roles and the access decision engine."""

from bizops_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from bizops_kernel.domain.decision import (
    AccessDecision,
    AccessMode,
    DecisionOutcome,
    DenyReason,
    ResourceRef,
    ScopeFilter,
    decide,
)
from bizops_kernel.domain.partner_access import (
    PartnerAccessInfo,
    business_id_filter,
    can_access_content,
    can_edit_in_business,
)
from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.request_metadata import RequestMetadata
from bizops_kernel.domain.roles import (
    ContentType,
    PermissionLevel,
    Role,
    role_at_least,
)

__all__ = [
    "AccessDecision",
    "AccessMode",
    "Clock",
    "ContentType",
    "DecisionOutcome",
    "DenyReason",
    "DeterministicClock",
    "PartnerAccessInfo",
    "PermissionLevel",
    "Principal",
    "RequestMetadata",
    "ResourceRef",
    "Role",
    "ScopeFilter",
    "SystemClock",
    "business_id_filter",
    "can_access_content",
    "can_edit_in_business",
    "decide",
    "role_at_least",
]
