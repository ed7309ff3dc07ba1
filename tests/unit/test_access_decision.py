"""
Unit tests for the Access Decision Engine.

Verifies:
- Rule order (inactive, non-partner, empty access, business, content, write)
- Read and write scopes are enforced independently
- Scope decisions carry the partner id and the visible business ids
- Property-based: staff always allowed, empty partner always denied,
  write permission never exceeds read permission
"""

from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bizops_kernel.domain.decision import (
    AccessMode,
    DecisionOutcome,
    DenyReason,
    ResourceRef,
    decide,
)
from bizops_kernel.domain.partner_access import PartnerAccessInfo
from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.roles import ContentType, PermissionLevel, Role

B1, B2, B3, B4 = uuid4(), uuid4(), uuid4(), uuid4()
POOL = [B1, B2, B3, B4]
PARTNER_ID = uuid4()


def make_principal(role: Role = Role.PARTNER, is_active: bool = True) -> Principal:
    return Principal(
        id=uuid4(),
        email="someone@example.com",
        name="Someone",
        role=role,
        is_active=is_active,
    )


@pytest.fixture
def access():
    """b1 editable with customers:edit, b2 read-only with customers:view."""
    return PartnerAccessInfo(
        partner_id=PARTNER_ID,
        business_ids=frozenset({B1, B2}),
        content_permissions={
            ContentType.CUSTOMERS: {PermissionLevel.EDIT, PermissionLevel.VIEW},
        },
        content_business_ids={ContentType.CUSTOMERS: {B1, B2}},
        editable_business_ids=frozenset({B1}),
        content_edit_business_ids={ContentType.CUSTOMERS: {B1}},
    )


class TestRuleOrder:
    def test_inactive_principal_denied_even_for_admin(self, access):
        decision = decide(
            make_principal(Role.ADMIN, is_active=False), None, ResourceRef("Customer", B1)
        )
        assert decision.denied
        assert decision.reason is DenyReason.PRINCIPAL_INACTIVE

    @pytest.mark.parametrize("role", [Role.MEMBER, Role.MANAGER, Role.ADMIN])
    def test_staff_allowed_without_partner_access(self, role):
        decision = decide(
            make_principal(role),
            None,
            ResourceRef("Customer", B3, ContentType.CUSTOMERS, AccessMode.WRITE),
        )
        assert decision.outcome is DecisionOutcome.ALLOW
        assert decision.scope is None

    def test_partner_without_access_denied(self):
        decision = decide(make_principal(), None, ResourceRef("Customer", B1))
        assert decision.reason is DenyReason.NO_PARTNER_ACCESS

    def test_partner_with_empty_access_denied(self):
        decision = decide(
            make_principal(), PartnerAccessInfo.empty(PARTNER_ID), ResourceRef("Customer")
        )
        assert decision.reason is DenyReason.NO_PARTNER_ACCESS

    def test_business_out_of_scope_denied(self, access):
        decision = decide(make_principal(), access, ResourceRef("Customer", B3))
        assert decision.reason is DenyReason.BUSINESS_OUT_OF_SCOPE

    def test_content_type_not_granted_denied(self, access):
        decision = decide(
            make_principal(), access, ResourceRef("Payment", B1, ContentType.PAYMENTS)
        )
        assert decision.reason is DenyReason.CONTENT_NOT_GRANTED

    def test_content_granted_in_other_business_only_denied(self):
        access = PartnerAccessInfo(
            partner_id=PARTNER_ID,
            business_ids={B1, B2},
            content_permissions={ContentType.PAYMENTS: {PermissionLevel.VIEW}},
            content_business_ids={ContentType.PAYMENTS: {B1}},
        )
        decision = decide(
            make_principal(), access, ResourceRef("Payment", B2, ContentType.PAYMENTS)
        )
        assert decision.reason is DenyReason.CONTENT_NOT_GRANTED

    def test_view_level_does_not_permit_write(self):
        access = PartnerAccessInfo(
            partner_id=PARTNER_ID,
            business_ids={B1},
            content_permissions={ContentType.CUSTOMERS: {PermissionLevel.VIEW}},
            content_business_ids={ContentType.CUSTOMERS: {B1}},
            editable_business_ids={B1},
        )
        decision = decide(
            make_principal(),
            access,
            ResourceRef("Customer", B1, ContentType.CUSTOMERS, AccessMode.WRITE),
        )
        assert decision.reason is DenyReason.CONTENT_NOT_GRANTED

    def test_edit_in_one_business_does_not_carry_to_another(self):
        """customers:view in b1 and customers:edit in b2, both editable."""
        access = PartnerAccessInfo(
            partner_id=PARTNER_ID,
            business_ids={B1, B2},
            content_permissions={
                ContentType.CUSTOMERS: {PermissionLevel.EDIT, PermissionLevel.VIEW},
            },
            content_business_ids={ContentType.CUSTOMERS: {B1, B2}},
            editable_business_ids={B1, B2},
            content_edit_business_ids={ContentType.CUSTOMERS: {B2}},
        )

        on_b1 = decide(
            make_principal(),
            access,
            ResourceRef("Customer", B1, ContentType.CUSTOMERS, AccessMode.WRITE),
        )
        on_b2 = decide(
            make_principal(),
            access,
            ResourceRef("Customer", B2, ContentType.CUSTOMERS, AccessMode.WRITE),
        )

        assert on_b1.reason is DenyReason.CONTENT_NOT_GRANTED
        assert on_b2.outcome is DecisionOutcome.SCOPE
        assert decide(
            make_principal(), access, ResourceRef("Customer", B1, ContentType.CUSTOMERS)
        ).permitted


class TestReadWriteScopes:
    def test_read_on_readonly_business_is_scoped(self, access):
        decision = decide(
            make_principal(), access, ResourceRef("Customer", B2, ContentType.CUSTOMERS)
        )
        assert decision.outcome is DecisionOutcome.SCOPE
        assert decision.scope.partner_id == PARTNER_ID
        assert decision.scope.business_ids == frozenset({B1, B2})

    def test_write_on_readonly_business_denied(self, access):
        """Read allowed, write forbidden: the business is not editable."""
        decision = decide(
            make_principal(),
            access,
            ResourceRef("Customer", B2, ContentType.CUSTOMERS, AccessMode.WRITE),
        )
        assert decision.reason is DenyReason.BUSINESS_NOT_EDITABLE

    def test_write_with_no_editable_business_denied(self):
        access = PartnerAccessInfo(partner_id=PARTNER_ID, business_ids={B1})
        decision = decide(
            make_principal(), access, ResourceRef("Customer", B1, mode=AccessMode.WRITE)
        )
        assert decision.reason is DenyReason.BUSINESS_NOT_EDITABLE

    def test_write_on_editable_business_scoped(self, access):
        decision = decide(
            make_principal(),
            access,
            ResourceRef("Customer", B1, ContentType.CUSTOMERS, AccessMode.WRITE),
        )
        assert decision.outcome is DecisionOutcome.SCOPE
        assert decision.permitted

    def test_write_without_business_denied(self, access):
        decision = decide(
            make_principal(),
            access,
            ResourceRef("Customer", None, ContentType.CUSTOMERS, AccessMode.WRITE),
        )
        assert decision.reason is DenyReason.BUSINESS_NOT_EDITABLE

    def test_collection_read_scoped_to_content_businesses(self):
        access = PartnerAccessInfo(
            partner_id=PARTNER_ID,
            business_ids={B1, B2},
            content_permissions={ContentType.PAYMENTS: {PermissionLevel.VIEW}},
            content_business_ids={ContentType.PAYMENTS: {B2}},
        )
        decision = decide(
            make_principal(), access, ResourceRef("Payment", content_type=ContentType.PAYMENTS)
        )
        assert decision.scope.business_ids == frozenset({B2})


# =============================================================================
# Property-based tests
# =============================================================================


resources = st.builds(
    ResourceRef,
    entity=st.sampled_from(["Customer", "Payment", "Budget", "WorkflowTemplate"]),
    business_id=st.one_of(st.none(), st.sampled_from(POOL)),
    content_type=st.one_of(st.none(), st.sampled_from(list(ContentType))),
    mode=st.sampled_from(list(AccessMode)),
)


@st.composite
def partner_accesses(draw):
    business_ids = draw(st.frozensets(st.sampled_from(POOL)))
    owned = sorted(business_ids)
    subset = st.frozensets(st.sampled_from(owned)) if owned else st.just(frozenset())

    content_permissions = {}
    content_business_ids = {}
    content_edit_business_ids = {}
    for content_type in draw(st.frozensets(st.sampled_from(list(ContentType)))):
        levels = draw(st.frozensets(st.sampled_from(list(PermissionLevel)), min_size=1))
        content_permissions[content_type] = frozenset().union(
            *(level.implied() for level in levels)
        )
        granted = draw(subset)
        content_business_ids[content_type] = granted
        if PermissionLevel.EDIT in levels and granted:
            content_edit_business_ids[content_type] = draw(
                st.frozensets(st.sampled_from(sorted(granted)))
            )

    return PartnerAccessInfo(
        partner_id=PARTNER_ID,
        business_ids=business_ids,
        content_permissions=content_permissions,
        content_business_ids=content_business_ids,
        editable_business_ids=draw(subset),
        content_edit_business_ids=content_edit_business_ids,
    )


class TestDecisionProperties:
    @given(
        role=st.sampled_from([Role.MEMBER, Role.MANAGER, Role.ADMIN]),
        resource=resources,
        access=st.one_of(st.none(), partner_accesses()),
    )
    def test_active_staff_always_allowed(self, role, resource, access):
        decision = decide(make_principal(role), access, resource)
        assert decision.outcome is DecisionOutcome.ALLOW

    @given(resource=resources)
    def test_partner_with_no_businesses_always_denied(self, resource):
        decision = decide(make_principal(), PartnerAccessInfo.empty(PARTNER_ID), resource)
        assert decision.denied

    @settings(max_examples=200)
    @given(access=partner_accesses(), resource=resources)
    def test_write_permission_implies_read_permission(self, access, resource):
        write = ResourceRef(
            resource.entity, resource.business_id, resource.content_type, AccessMode.WRITE
        )
        read = ResourceRef(
            resource.entity, resource.business_id, resource.content_type, AccessMode.READ
        )
        if decide(make_principal(), access, write).permitted:
            assert decide(make_principal(), access, read).permitted

    @given(access=partner_accesses(), resource=resources)
    def test_scope_never_exceeds_granted_businesses(self, access, resource):
        decision = decide(make_principal(), access, resource)
        if decision.outcome is DecisionOutcome.SCOPE:
            assert decision.scope.business_ids <= access.business_ids
            assert decision.scope.partner_id == PARTNER_ID
        else:
            assert decision.denied
