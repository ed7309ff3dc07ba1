"""
PartnerAccessAdminService -- replace a partner's business and content grants.

Responsibility:
    Turn an admin's list of per-business accesses into grant rows: unlisted
    business grants are deactivated, listed ones are upserted, and the
    content grants are replaced wholesale.

Architecture position:
    Kernel > Services.  Runs through EntityMutationFacade as an UPDATE of
    the owning Partner, so the change is role-checked, audited and
    versioned like any other mutation.  The Partner snapshot includes the
    grants, which makes the before/after of a grant change visible in the
    audit trail.

Invariants enforced:
    - Business grants are never deleted, only deactivated.
    - Unknown content types are dropped (and logged), never stored.
    - Content grants carry "edit" when the business grant can edit,
      "view" otherwise.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.request_metadata import RequestMetadata
from bizops_kernel.domain.roles import PermissionLevel, parse_content_type
from bizops_kernel.logging_config import get_logger
from bizops_kernel.models.audit_log import AuditAction
from bizops_kernel.models.partner import Partner, PartnerBusiness, PartnerContentGrant
from bizops_kernel.services.mutation_facade import EntityMutationFacade, MutationResult

logger = get_logger("services.partner_access_admin")


@dataclass(frozen=True)
class PartnerAccessGrant:
    """One business a partner should have access to."""

    business_id: UUID
    content_types: tuple[str, ...] = ()
    can_edit: bool = False
    is_active: bool = True


class PartnerAccessAdminService:
    """Grant administration for partners."""

    def __init__(self, facade: EntityMutationFacade):
        self._facade = facade

    def replace_accesses(
        self,
        principal: Principal,
        partner_id: UUID,
        accesses: Iterable[PartnerAccessGrant],
        request_metadata: RequestMetadata | None = None,
    ) -> MutationResult:
        """
        Replace all grants of a partner.

        Raises:
            ForbiddenError: principal is below the Partner UPDATE role.
            EntityNotFoundError: partner missing or soft-deleted.
        """
        wanted: dict[UUID, PartnerAccessGrant] = {}
        for access in accesses:
            wanted[access.business_id] = access

        def apply(partner: Partner, _data: dict) -> None:
            self._replace_business_grants(partner, wanted)
            self._replace_content_grants(partner, wanted)

        return self._facade.mutate(
            principal,
            AuditAction.UPDATE,
            "Partner",
            partner_id,
            apply,
            request_metadata=request_metadata,
        )

    def _replace_business_grants(
        self, partner: Partner, wanted: dict[UUID, PartnerAccessGrant]
    ) -> None:
        existing = {g.business_id: g for g in partner.business_grants}

        for business_id, grant in existing.items():
            if business_id not in wanted:
                grant.is_active = False

        for business_id, access in wanted.items():
            grant = existing.get(business_id)
            if grant is None:
                partner.business_grants.append(
                    PartnerBusiness(
                        business_id=business_id,
                        is_active=access.is_active,
                        can_edit=access.can_edit,
                    )
                )
            else:
                grant.is_active = access.is_active
                grant.can_edit = access.can_edit

    def _replace_content_grants(
        self, partner: Partner, wanted: dict[UUID, PartnerAccessGrant]
    ) -> None:
        target: set[tuple[UUID, str, str]] = set()
        for business_id, access in wanted.items():
            level = PermissionLevel.EDIT if access.can_edit else PermissionLevel.VIEW
            for raw in access.content_types:
                content_type = parse_content_type(raw)
                if content_type is None:
                    logger.warning(
                        "grant_skipped_invalid",
                        extra={
                            "partner_id": str(partner.id),
                            "business_id": str(business_id),
                            "content_type": raw,
                        },
                    )
                    continue
                target.add((business_id, content_type.value, level.value))

        # Matching rows are kept so the unique constraint never sees a
        # delete and re-insert of the same grant in one flush.
        kept = [
            g
            for g in partner.content_grants
            if (g.business_id, g.content_type, g.permission_level) in target
        ]
        present = {(g.business_id, g.content_type, g.permission_level) for g in kept}
        added = [
            PartnerContentGrant(
                business_id=business_id,
                content_type=content_type,
                permission_level=level,
            )
            for business_id, content_type, level in sorted(target - present, key=str)
        ]
        partner.content_grants = kept + added
