"""
Partner Access Resolver.

Responsibility:
    Compute the PartnerAccessInfo for a PARTNER principal from the live
    grant tables.  Returns None for every other role (no scoping).

Architecture position:
    Kernel > Services.  Read-only; performs no writes.

Invariants enforced:
    - Fail closed: a missing, soft-deleted or inactive partner link yields
      an empty PartnerAccessInfo (zero access), never None.
    - Only active partner-business grants count, and content grants only
      count inside those businesses.
    - Grant rows with unknown content types or permission levels are
      skipped here and never reach the decision engine.
    - Idempotent: two calls with unchanged grants return equal values.
    - Never cached; callers resolve once per request.
"""

from collections import defaultdict
from uuid import UUID

from sqlalchemy import select

from bizops_kernel.domain.partner_access import PartnerAccessInfo
from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.roles import (
    ContentType,
    PermissionLevel,
    Role,
    parse_content_type,
    parse_permission_level,
)
from bizops_kernel.logging_config import get_logger
from bizops_kernel.models.partner import Partner, PartnerBusiness, PartnerContentGrant
from bizops_kernel.services.base import BaseService

logger = get_logger("services.partner_access_resolver")


class PartnerAccessResolver(BaseService[Partner]):
    """Folds partner grant rows into a PartnerAccessInfo."""

    def _find_partner(self, user_id: UUID) -> Partner | None:
        stmt = (
            select(Partner)
            .where(Partner.user_id == user_id, Partner.deleted_at.is_(None))
            .order_by(Partner.created_at)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def resolve(self, principal: Principal) -> PartnerAccessInfo | None:
        """
        Resolve the scope for principal.

        Returns:
            None for non-partner roles, otherwise a PartnerAccessInfo
            (possibly empty).
        """
        if principal.role is not Role.PARTNER:
            return None

        partner = self._find_partner(principal.id)
        if partner is None or not partner.is_active:
            logger.warning(
                "partner_access_resolved",
                extra={
                    "user_id": str(principal.id),
                    "partner_id": str(partner.id) if partner else None,
                    "business_count": 0,
                    "empty_reason": "partner_missing" if partner is None else "partner_inactive",
                },
            )
            return PartnerAccessInfo.empty(partner.id if partner else None)

        grants = self.session.execute(
            select(PartnerBusiness)
            .where(
                PartnerBusiness.partner_id == partner.id,
                PartnerBusiness.is_active.is_(True),
            )
            .execution_options(populate_existing=True)
        ).scalars().all()

        business_ids = {g.business_id for g in grants}
        editable_business_ids = {g.business_id for g in grants if g.can_edit}

        content_permissions: dict[ContentType, set[PermissionLevel]] = defaultdict(set)
        content_business_ids: dict[ContentType, set[UUID]] = defaultdict(set)
        content_edit_business_ids: dict[ContentType, set[UUID]] = defaultdict(set)

        if business_ids:
            content_rows = self.session.execute(
                select(PartnerContentGrant)
                .where(
                    PartnerContentGrant.partner_id == partner.id,
                    PartnerContentGrant.business_id.in_(business_ids),
                )
                .execution_options(populate_existing=True)
            ).scalars().all()

            for row in content_rows:
                content_type = parse_content_type(row.content_type)
                level = parse_permission_level(row.permission_level)
                if content_type is None or level is None:
                    logger.warning(
                        "grant_skipped_invalid",
                        extra={
                            "partner_id": str(partner.id),
                            "grant_id": str(row.id),
                            "content_type": row.content_type,
                            "permission_level": row.permission_level,
                        },
                    )
                    continue
                content_permissions[content_type] |= level.implied()
                content_business_ids[content_type].add(row.business_id)
                if level is PermissionLevel.EDIT:
                    content_edit_business_ids[content_type].add(row.business_id)

        access = PartnerAccessInfo(
            partner_id=partner.id,
            business_ids=frozenset(business_ids),
            content_permissions=content_permissions,
            content_business_ids=content_business_ids,
            editable_business_ids=frozenset(editable_business_ids),
            content_edit_business_ids=content_edit_business_ids,
        )

        logger.info(
            "partner_access_resolved",
            extra={
                "user_id": str(principal.id),
                "partner_id": str(partner.id),
                "business_count": len(access.business_ids),
                "editable_count": len(access.editable_business_ids),
                "content_types": sorted(ct.value for ct in access.content_permissions),
            },
        )
        return access
