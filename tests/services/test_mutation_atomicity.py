"""
Failure injection for the facade's commit sequencing.

Verifies:
- INDEPENDENT: a failed audit or version write is rolled back alone, logged
  at ERROR, and reported in MutationResult.audit_gaps; the primary mutation
  stands
- TRANSACTIONAL: any failure rolls back all three writes and raises
  PersistenceError
- A failed primary mutation always rolls back and raises PersistenceError
- A mutation_fn that raises is rolled back and surfaces as ValidationError
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from bizops_kernel.exceptions import PersistenceError, ValidationError
from bizops_kernel.models import AuditAction, AuditLogEntry, Customer, DataVersion
from bizops_kernel.services.audit_log_writer import AuditLogWriter
from bizops_kernel.services.data_version_writer import DataVersionWriter
from bizops_kernel.services.mutation_facade import EntityMutationFacade


def store_down() -> OperationalError:
    return OperationalError("INSERT", {}, Exception("database is unreachable"))


class FailingAuditLogWriter(AuditLogWriter):
    def write(self, **kwargs):
        raise store_down()


class FailingDataVersionWriter(DataVersionWriter):
    def create(self, **kwargs):
        raise store_down()


def count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def stored_name(session, customer_id) -> str:
    return session.execute(
        select(Customer.name)
        .where(Customer.id == customer_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


@pytest.fixture
def make_facade(session, deterministic_clock):
    def _make(policy, *, failing_audit=False, failing_version=False):
        return EntityMutationFacade(
            session,
            policy,
            deterministic_clock,
            audit_writer=(
                FailingAuditLogWriter(session, deterministic_clock) if failing_audit else None
            ),
            version_writer=(
                FailingDataVersionWriter(session, deterministic_clock) if failing_version else None
            ),
        )

    return _make


class TestIndependent:
    def test_audit_failure_keeps_mutation_and_reports_gap(
        self, session, policy, make_facade, member, customers, captured_logs
    ):
        c1 = customers["c1"]
        facade = make_facade(policy, failing_audit=True)

        result = facade.mutate(
            member, AuditAction.UPDATE, "Customer", c1.id, payload={"name": "Kept"}
        )

        assert result.audit_gaps == ("audit",)
        assert not result.trail_complete
        assert result.audit_entry_id is None
        assert result.version_id is not None
        assert stored_name(session, c1.id) == "Kept"
        assert count(session, AuditLogEntry) == 0
        assert count(session, DataVersion) == 1

        failed = [r for r in captured_logs() if r["message"] == "audit_write_failed"]
        assert len(failed) == 1
        assert failed[0]["level"] == "ERROR"
        assert failed[0]["exc_type"] == "OperationalError"

    def test_version_failure_keeps_mutation_and_audit(
        self, session, policy, make_facade, member, customers, captured_logs
    ):
        c1 = customers["c1"]
        facade = make_facade(policy, failing_version=True)

        result = facade.mutate(
            member, AuditAction.UPDATE, "Customer", c1.id, payload={"name": "Kept"}
        )

        assert result.audit_gaps == ("version",)
        assert result.audit_entry_id is not None
        assert stored_name(session, c1.id) == "Kept"
        assert count(session, AuditLogEntry) == 1
        assert count(session, DataVersion) == 0
        assert any(r["message"] == "version_write_failed" for r in captured_logs())

    def test_both_failures_reported(self, session, policy, make_facade, member, businesses):
        facade = make_facade(policy, failing_audit=True, failing_version=True)

        result = facade.mutate(
            member,
            AuditAction.CREATE,
            "Customer",
            None,
            payload={"name": "Unaudited", "business_id": businesses["b1"].id},
        )

        assert result.audit_gaps == ("audit", "version")
        assert session.get(Customer, result.entity_id) is not None


class TestTransactional:
    def test_audit_failure_rolls_back_everything(
        self, session, transactional_policy, make_facade, member, customers
    ):
        c1 = customers["c1"]
        facade = make_facade(transactional_policy, failing_audit=True)

        with pytest.raises(PersistenceError) as exc_info:
            facade.mutate(member, AuditAction.UPDATE, "Customer", c1.id, payload={"name": "Lost"})

        assert exc_info.value.operation == "audit_write"
        assert exc_info.value.code == "PERSISTENCE_ERROR"
        assert stored_name(session, c1.id) == "Customer C1"
        assert count(session, DataVersion) == 0

    def test_version_failure_rolls_back_everything(
        self, session, transactional_policy, make_facade, member, businesses
    ):
        facade = make_facade(transactional_policy, failing_version=True)

        with pytest.raises(PersistenceError):
            facade.mutate(
                member,
                AuditAction.CREATE,
                "Customer",
                None,
                payload={"name": "Lost", "business_id": businesses["b1"].id},
            )

        assert count(session, Customer) == 0
        assert count(session, AuditLogEntry) == 0

    def test_success_commits_all_three(
        self, session, transactional_policy, make_facade, member, customers
    ):
        facade = make_facade(transactional_policy)

        result = facade.mutate(
            member, AuditAction.UPDATE, "Customer", customers["c1"].id, payload={"name": "All"}
        )

        session.rollback()
        assert result.trail_complete
        assert stored_name(session, customers["c1"].id) == "All"
        assert count(session, AuditLogEntry) == 1
        assert count(session, DataVersion) == 1


class TestPrimaryFailure:
    def test_primary_failure_raises_and_writes_nothing(
        self, session, policy, make_facade, member, businesses
    ):
        facade = make_facade(policy)

        def build_without_name(data):
            return Customer(business_id=data["business_id"], name=None)

        with pytest.raises(PersistenceError) as exc_info:
            facade.mutate(
                member,
                AuditAction.CREATE,
                "Customer",
                None,
                build_without_name,
                payload={"name": "Ignored", "business_id": businesses["b1"].id},
            )

        assert exc_info.value.operation == "mutation"
        assert count(session, Customer) == 0
        assert count(session, AuditLogEntry) == 0
        assert count(session, DataVersion) == 0

    def test_raising_mutation_fn_leaves_session_clean(
        self, session, policy, make_facade, member, customers, captured_logs
    ):
        c1 = customers["c1"]
        facade = make_facade(policy)

        def rename_then_fail(target, data):
            target.name = "Half done"
            raise ValueError("lookup failed")

        with pytest.raises(ValidationError) as exc_info:
            facade.mutate(member, AuditAction.UPDATE, "Customer", c1.id, rename_then_fail)

        assert exc_info.value.__cause__.args == ("lookup failed",)
        assert not session.dirty
        assert not session.new
        assert stored_name(session, c1.id) == "Customer C1"
        assert count(session, AuditLogEntry) == 0

        failed = [r for r in captured_logs() if r["message"] == "mutation_failed"]
        assert failed[0]["stage"] == "mutation_fn"
