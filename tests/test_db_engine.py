"""
Tests for engine and session management.

Verifies:
- session_scope commits on success and rolls back on error
- Sessions keep attribute values after commit
- create_tables / drop_tables manage tables and append-only triggers
- Accessors fail loudly before the engine is initialized
"""

from uuid import uuid4

import pytest
from sqlalchemy import inspect, select

from bizops_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from bizops_kernel.db.triggers import get_installed_triggers, triggers_installed
from bizops_kernel.models import Business, Customer


def business_codes() -> set[str]:
    session = get_session()
    try:
        return set(session.execute(select(Business.code)).scalars())
    finally:
        session.close()


class TestSessionScope:
    def test_commits_on_success(self, engine):
        with session_scope() as session:
            session.add(Business(id=uuid4(), code="OK", name="Committed"))

        assert business_codes() == {"OK"}

    def test_rolls_back_on_error(self, engine, captured_logs):
        with pytest.raises(ValueError):
            with session_scope() as session:
                session.add(Business(id=uuid4(), code="NO", name="Rolled back"))
                session.flush()
                raise ValueError("boom")

        assert business_codes() == set()
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_values_survive_commit(self, engine):
        factory = get_session_factory()
        session = factory()
        try:
            business = Business(id=uuid4(), code="KEEP", name="Kept")
            session.add(business)
            session.commit()
            assert "code" not in inspect(business).expired_attributes
            assert business.code == "KEEP"
        finally:
            session.close()


class TestTables:
    def test_create_without_triggers(self):
        init_engine_from_url("sqlite://")
        try:
            create_tables(install_triggers=False)
            engine = get_engine()
            assert "audit_logs" in inspect(engine).get_table_names()
            assert get_installed_triggers(engine) == []
        finally:
            reset_engine()

    def test_drop_tables(self, engine):
        assert triggers_installed(engine)

        drop_tables()

        assert inspect(engine).get_table_names() == []
        assert get_installed_triggers(engine) == []


class TestUninitialized:
    @pytest.mark.parametrize("accessor", [get_engine, get_session, get_session_factory])
    def test_accessors_raise(self, accessor):
        reset_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            accessor()


def test_soft_delete_flag(session, customers, deterministic_clock):
    c1 = customers["c1"]
    assert not c1.is_deleted

    c1.deleted_at = deterministic_clock.now()
    assert c1.is_deleted
    assert isinstance(c1, Customer)
