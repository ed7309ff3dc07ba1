"""
Tests for EntitySelector.

Verifies:
- Soft-deleted rows are invisible to find_first and find_many
- A partner scope narrows by business_id, and by partner_id where present
- Models that cannot be scoped yield nothing to a scoped reader
"""

from uuid import uuid4

from bizops_kernel.domain.decision import ScopeFilter
from bizops_kernel.models import Business, Customer, Partner, Payment
from bizops_kernel.selectors.entity_selector import EntitySelector


def scope_of(*business_ids, partner_id=None) -> ScopeFilter:
    return ScopeFilter(partner_id=partner_id, business_ids=frozenset(business_ids))


class TestSoftDelete:
    def test_find_first_hides_tombstoned_row(self, session, customers, deterministic_clock):
        c1 = customers["c1"]
        selector = EntitySelector(session)
        assert selector.find_first(Customer, c1.id) is c1

        c1.deleted_at = deterministic_clock.now()
        session.commit()

        assert selector.find_first(Customer, c1.id) is None

    def test_find_many_hides_tombstoned_rows(self, session, customers, deterministic_clock):
        customers["c2"].deleted_at = deterministic_clock.now()
        session.commit()

        names = {c.name for c in EntitySelector(session).find_many(Customer)}
        assert names == {"Customer C1", "Customer C3"}

    def test_model_without_soft_delete_unfiltered(self, session, businesses):
        rows = EntitySelector(session).find_many(Business)
        assert {b.code for b in rows} == {"B1", "B2", "B3"}

    def test_missing_id(self, session, customers):
        assert EntitySelector(session).find_first(Customer, uuid4()) is None


class TestScope:
    def test_scope_by_business(self, session, businesses, customers):
        selector = EntitySelector(session)
        scope = scope_of(businesses["b1"].id, businesses["b2"].id, partner_id=uuid4())

        visible = {c.name for c in selector.find_many(Customer, scope)}
        assert visible == {"Customer C1", "Customer C2"}
        assert selector.find_first(Customer, customers["c3"].id, scope) is None
        assert selector.find_first(Customer, customers["c1"].id, scope) is customers["c1"]

    def test_empty_scope_sees_nothing(self, session, customers):
        assert EntitySelector(session).find_many(Customer, scope_of()) == []

    def test_payments_narrowed_to_own_partner(self, session, businesses, partner):
        b1 = businesses["b1"].id
        own = Payment(business_id=b1, partner_id=partner.id, amount=10, total_amount=10)
        other = Payment(business_id=b1, partner_id=None, amount=20, total_amount=20)
        session.add_all([own, other])
        session.commit()

        selector = EntitySelector(session)
        scoped = selector.find_many(Payment, scope_of(b1, partner_id=partner.id))
        assert [p.id for p in scoped] == [own.id]
        assert selector.find_first(Payment, other.id, scope_of(b1, partner_id=partner.id)) is None

        unscoped = selector.find_many(Payment)
        assert {p.id for p in unscoped} == {own.id, other.id}

    def test_unscopable_model_yields_nothing(self, session, businesses, partner):
        selector = EntitySelector(session)
        scope = scope_of(businesses["b1"].id, partner_id=partner.id)

        assert selector.find_many(Partner, scope) == []
        assert selector.find_first(Partner, partner.id, scope) is None
        assert selector.find_first(Partner, partner.id) is partner


class TestFindMany:
    def test_limit(self, session, customers):
        assert len(EntitySelector(session).find_many(Customer, limit=2)) == 2

    def test_explicit_order(self, session, customers):
        rows = EntitySelector(session).find_many(Customer, order_by=[Customer.name.desc()])
        assert [c.name for c in rows] == ["Customer C3", "Customer C2", "Customer C1"]
