"""
PartnerAccessInfo -- the scope a PARTNER principal is confined to.

Responsibility:
    Immutable value describing which businesses a partner can see, which
    content types are granted, in which businesses each content type applies
    at which level, and which businesses are editable.
    Also the listing-filter helpers used by read paths.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.  Built by
    PartnerAccessResolver from the grant tables.

Invariants enforced:
    - editable_business_ids is a subset of business_ids.
    - every content_business_ids value is a subset of business_ids.
    - every content_edit_business_ids value is a subset of the matching
      content_business_ids value.
    Violations raise InvalidPartnerAccessError at construction.

Failure modes:
    - InvalidPartnerAccessError on a subset violation.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from uuid import UUID

from bizops_kernel.domain.roles import ContentType, PermissionLevel
from bizops_kernel.exceptions import InvalidPartnerAccessError


def _freeze_map(mapping: Mapping) -> dict:
    """Copy a mapping with frozenset values, dropping empty entries."""
    return {
        key: frozenset(values)
        for key, values in mapping.items()
        if values
    }


@dataclass(frozen=True)
class PartnerAccessInfo:
    """
    Derived, never stored.  Recomputed for every request that needs it.

    Contract:
        Two values built from the same grants compare equal.

    Guarantees:
        - All set-valued fields are frozensets.
        - Mapping fields omit content types with no grants.
    """

    partner_id: UUID | None
    business_ids: frozenset[UUID] = frozenset()
    content_permissions: Mapping[ContentType, frozenset[PermissionLevel]] = field(
        default_factory=dict
    )
    content_business_ids: Mapping[ContentType, frozenset[UUID]] = field(
        default_factory=dict
    )
    editable_business_ids: frozenset[UUID] = frozenset()
    content_edit_business_ids: Mapping[ContentType, frozenset[UUID]] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "business_ids", frozenset(self.business_ids))
        object.__setattr__(
            self, "editable_business_ids", frozenset(self.editable_business_ids)
        )
        object.__setattr__(
            self, "content_permissions", _freeze_map(self.content_permissions)
        )
        object.__setattr__(
            self, "content_business_ids", _freeze_map(self.content_business_ids)
        )
        object.__setattr__(
            self,
            "content_edit_business_ids",
            _freeze_map(self.content_edit_business_ids),
        )

        partner = str(self.partner_id) if self.partner_id else "(none)"

        stray = self.editable_business_ids - self.business_ids
        if stray:
            raise InvalidPartnerAccessError(
                partner, "editable_business_ids", sorted(str(b) for b in stray)
            )

        for content_type, ids in self.content_business_ids.items():
            stray = ids - self.business_ids
            if stray:
                raise InvalidPartnerAccessError(
                    partner,
                    f"content_business_ids[{content_type.value}]",
                    sorted(str(b) for b in stray),
                )

        for content_type, ids in self.content_edit_business_ids.items():
            stray = ids - self.businesses_for(content_type)
            if stray:
                raise InvalidPartnerAccessError(
                    partner,
                    f"content_edit_business_ids[{content_type.value}]",
                    sorted(str(b) for b in stray),
                )

    @classmethod
    def empty(cls, partner_id: UUID | None = None) -> "PartnerAccessInfo":
        """Zero access.  Used when the partner link is missing or inactive."""
        return cls(partner_id=partner_id)

    @property
    def is_empty(self) -> bool:
        return not self.business_ids

    def levels_for(
        self,
        content_type: ContentType,
        business_id: UUID | None = None,
    ) -> frozenset[PermissionLevel]:
        """
        Levels held on a content type.

        Without a business this is the union over all businesses.  With one
        it is only what is granted in that business.
        """
        if business_id is None:
            return self.content_permissions.get(content_type, frozenset())
        levels = set()
        if business_id in self.businesses_for(content_type):
            levels.add(PermissionLevel.VIEW)
        if business_id in self.businesses_for(content_type, PermissionLevel.EDIT):
            levels.update(PermissionLevel.EDIT.implied())
        return frozenset(levels)

    def businesses_for(
        self,
        content_type: ContentType,
        level: PermissionLevel = PermissionLevel.VIEW,
    ) -> frozenset[UUID]:
        if level is PermissionLevel.EDIT:
            return self.content_edit_business_ids.get(content_type, frozenset())
        return self.content_business_ids.get(content_type, frozenset())


def business_id_filter(
    access: PartnerAccessInfo | None,
    content_type: ContentType | None = None,
) -> frozenset[UUID] | None:
    """
    Business ids a listing must be restricted to.

    None means no restriction (non-partner).  An empty frozenset means the
    listing must return nothing.
    """
    if access is None:
        return None
    if content_type is not None:
        return access.businesses_for(content_type)
    return access.business_ids


def can_access_content(
    access: PartnerAccessInfo | None,
    content_type: ContentType,
) -> bool:
    if access is None:
        return True
    return bool(access.businesses_for(content_type))


def can_edit_in_business(
    access: PartnerAccessInfo | None,
    business_id: UUID,
) -> bool:
    if access is None:
        return True
    return business_id in access.editable_business_ids
