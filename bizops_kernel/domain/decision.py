"""
Access Decision Engine.

Responsibility:
    Combine a Principal, its PartnerAccessInfo and a requested resource into
    Allow, Deny or Scope.  Pure function: no I/O, no clock, no logging.

Architecture position:
    Kernel > Domain -- pure functional core.  Called by the Entity Mutation
    Facade and by read paths; the caller logs and raises.

Rules, evaluated in order:
    1. Inactive principal                                  -> Deny
    2. Role other than PARTNER                             -> Allow
    3. PARTNER with no access info or no businesses        -> Deny
    4. Resource business not in business_ids               -> Deny
    5. Content type gated and the required level not held
       in the resource business (or in any, if none given) -> Deny
    6. Write without the business in editable_business_ids -> Deny
    Otherwise                                              -> Scope

Invariants enforced:
    - Write access is never granted where read access is not.  Rules 4 and 5
      run before rule 6 for every write.
    - A Scope always carries the partner id and the business ids listings
      must be filtered by.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from bizops_kernel.domain.partner_access import PartnerAccessInfo
from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.roles import ContentType, PermissionLevel, Role


class AccessMode(str, Enum):
    READ = "read"
    WRITE = "write"

    @property
    def required_level(self) -> PermissionLevel:
        if self is AccessMode.WRITE:
            return PermissionLevel.EDIT
        return PermissionLevel.VIEW


@dataclass(frozen=True)
class ResourceRef:
    """
    The thing being accessed.

    business_id None means a collection-level request (e.g. a listing) or
    an entity with no owning business.
    """

    entity: str
    business_id: UUID | None = None
    content_type: ContentType | None = None
    mode: AccessMode = AccessMode.READ


class DecisionOutcome(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    SCOPE = "scope"


class DenyReason(str, Enum):
    PRINCIPAL_INACTIVE = "principal_inactive"
    NO_PARTNER_ACCESS = "no_partner_access"
    BUSINESS_OUT_OF_SCOPE = "business_out_of_scope"
    CONTENT_NOT_GRANTED = "content_not_granted"
    BUSINESS_NOT_EDITABLE = "business_not_editable"


@dataclass(frozen=True)
class ScopeFilter:
    """Predicate every query for a scoped principal must be narrowed by."""

    partner_id: UUID | None
    business_ids: frozenset[UUID]


@dataclass(frozen=True)
class AccessDecision:
    outcome: DecisionOutcome
    reason: DenyReason | None = None
    message: str = ""
    scope: ScopeFilter | None = None

    @property
    def permitted(self) -> bool:
        return self.outcome is not DecisionOutcome.DENY

    @property
    def denied(self) -> bool:
        return self.outcome is DecisionOutcome.DENY


def _allow() -> AccessDecision:
    return AccessDecision(outcome=DecisionOutcome.ALLOW)


def _deny(reason: DenyReason, message: str) -> AccessDecision:
    return AccessDecision(outcome=DecisionOutcome.DENY, reason=reason, message=message)


def _scope(partner_id: UUID | None, business_ids: frozenset[UUID]) -> AccessDecision:
    return AccessDecision(
        outcome=DecisionOutcome.SCOPE,
        scope=ScopeFilter(partner_id=partner_id, business_ids=business_ids),
    )


def decide(
    principal: Principal,
    partner_access: PartnerAccessInfo | None,
    resource: ResourceRef,
) -> AccessDecision:
    """Evaluate the access rules for one resource.  See module docstring."""
    if not principal.is_active:
        return _deny(DenyReason.PRINCIPAL_INACTIVE, "Principal is deactivated.")

    if principal.role is not Role.PARTNER:
        return _allow()

    if partner_access is None or partner_access.is_empty:
        return _deny(
            DenyReason.NO_PARTNER_ACCESS,
            "Partner has no active business grants.",
        )

    business_id = resource.business_id
    if business_id is not None and business_id not in partner_access.business_ids:
        return _deny(
            DenyReason.BUSINESS_OUT_OF_SCOPE,
            f"Business {business_id} is not granted to partner.",
        )

    visible = partner_access.business_ids
    content_type = resource.content_type
    if content_type is not None:
        required = resource.mode.required_level
        if required not in partner_access.levels_for(content_type, business_id):
            where = f" in business {business_id}" if business_id is not None else ""
            return _deny(
                DenyReason.CONTENT_NOT_GRANTED,
                f"Partner lacks {required.value} on {content_type.value}{where}.",
            )
        visible = partner_access.businesses_for(content_type, required)

    if resource.mode is AccessMode.WRITE:
        if business_id is None or business_id not in partner_access.editable_business_ids:
            return _deny(
                DenyReason.BUSINESS_NOT_EDITABLE,
                f"Business {business_id} is read-only for partner.",
            )

    return _scope(partner_access.partner_id, visible)
