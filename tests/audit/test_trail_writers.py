"""
Tests for AuditLogWriter and DataVersionWriter.

Verifies:
- The before/after contract per action
- Snapshots are stored as plain JSON and timestamps come from the Clock
- Version numbers are allocated per record starting at 1
- Only CREATE and UPDATE produce data versions
"""

from uuid import uuid4

import pytest

from bizops_kernel.domain.request_metadata import RequestMetadata
from bizops_kernel.exceptions import AuditContractError
from bizops_kernel.models import AuditAction, ChangeType
from bizops_kernel.services.audit_log_writer import AuditLogWriter
from bizops_kernel.services.data_version_writer import DataVersionWriter


@pytest.fixture
def writer(session, deterministic_clock):
    return AuditLogWriter(session, deterministic_clock)


@pytest.fixture
def version_writer(session, deterministic_clock):
    return DataVersionWriter(session, deterministic_clock)


class TestAuditContract:
    @pytest.mark.parametrize(
        "action, before, after",
        [
            (AuditAction.CREATE, {"a": 1}, {"a": 2}),
            (AuditAction.CREATE, None, None),
            (AuditAction.UPDATE, None, {"a": 1}),
            (AuditAction.UPDATE, {"a": 1}, None),
            (AuditAction.SOFT_DELETE, None, None),
            (AuditAction.SOFT_DELETE, {"a": 1}, {"a": 1}),
            (AuditAction.DELETE, {"a": 1}, {"a": 1}),
        ],
    )
    def test_invalid_shapes_rejected(self, engine, writer, action, before, after):
        with pytest.raises(AuditContractError):
            writer.write(
                user_id=None,
                action=action,
                entity="Customer",
                entity_id=uuid4(),
                before=before,
                after=after,
            )

    def test_unknown_action_rejected(self, engine, writer):
        with pytest.raises(AuditContractError) as exc_info:
            writer.write(
                user_id=None, action="PURGE", entity="Customer", entity_id=uuid4(), before={}
            )
        assert exc_info.value.code == "AUDIT_CONTRACT_VIOLATION"

    def test_soft_delete_keeps_before(self, engine, writer):
        entry = writer.write(
            user_id=uuid4(),
            action="SOFT_DELETE",
            entity="Customer",
            entity_id=uuid4(),
            before={"name": "Gone"},
        )
        assert entry.action == "SOFT_DELETE"
        assert entry.before == {"name": "Gone"}
        assert entry.after is None


class TestAuditEntry:
    def test_snapshot_is_plain_json(self, engine, writer):
        business_id = uuid4()
        entry = writer.write(
            user_id=None,
            action=AuditAction.CREATE,
            entity="Customer",
            entity_id=uuid4(),
            after={"business_id": business_id, "tags": {"b", "a"}},
        )
        assert entry.after == {"business_id": str(business_id), "tags": ["a", "b"]}

    def test_timestamp_and_metadata(self, engine, writer, deterministic_clock, captured_logs):
        meta = RequestMetadata("POST", "/api/customers", "198.51.100.7", "pytest")
        entry = writer.write(
            user_id=None,
            action=AuditAction.CREATE,
            entity="Customer",
            entity_id=uuid4(),
            after={"name": "x"},
            request_metadata=meta,
        )
        assert entry.created_at == deterministic_clock.now()
        assert (entry.method, entry.path, entry.ip_address, entry.user_agent) == (
            "POST",
            "/api/customers",
            "198.51.100.7",
            "pytest",
        )
        written = next(r for r in captured_logs() if r["message"] == "audit_log_written")
        assert written["audited_entity"] == "Customer"

    def test_metadata_optional(self, engine, writer):
        entry = writer.write(
            user_id=None,
            action=AuditAction.CREATE,
            entity="Customer",
            entity_id=uuid4(),
            after={"name": "x"},
        )
        assert entry.ip_address is None
        assert entry.method is None


class TestDataVersions:
    def test_numbering_per_record(self, engine, version_writer):
        first, second = uuid4(), uuid4()
        numbers = [
            version_writer.create(
                entity="Customer",
                entity_id=entity_id,
                data={"n": i},
                changed_by=None,
                change_type=ChangeType.CREATE if i == 0 else ChangeType.UPDATE,
            ).version
            for i, entity_id in enumerate([first, first, second, first])
        ]
        assert numbers == [1, 2, 1, 3]
        assert version_writer.next_version("Customer", first) == 4
        assert version_writer.next_version("Payment", first) == 1

    @pytest.mark.parametrize("change_type", ["SOFT_DELETE", "DELETE", "RESTORE"])
    def test_only_create_and_update(self, engine, version_writer, change_type):
        with pytest.raises(AuditContractError):
            version_writer.create(
                entity="Customer",
                entity_id=uuid4(),
                data={},
                changed_by=None,
                change_type=change_type,
            )

    def test_full_snapshot_stored(self, engine, version_writer, deterministic_clock):
        data = {"name": "Full", "email": "full@example.com", "note": None}
        version = version_writer.create(
            entity="Customer",
            entity_id=uuid4(),
            data=data,
            changed_by=uuid4(),
            change_type="UPDATE",
        )
        assert version.data == data
        assert version.change_type == "UPDATE"
        assert version.created_at == deterministic_clock.now()
