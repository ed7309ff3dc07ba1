"""
Pytest fixtures for the bizops kernel test suite.

Provides:
- A fresh in-memory SQLite database per test (tables, append-only triggers
  and ORM listeners installed)
- Seeded users, businesses, a partner with grants, and customers
- The default access policy and an EntityMutationFacade built on it
- Captured structured logs

Seeded partner grants:

    business | can_edit | content grants
    ---------|----------|-------------------------------
    b1       | yes      | customers:edit, payments:edit
    b2       | no       | customers:view
    b3       | --       | (not granted)
"""

import dataclasses
import json
import logging
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from bizops_config import get_active_policy
from bizops_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from bizops_kernel.db.immutability import register_immutability_listeners
from bizops_kernel.domain.clock import DeterministicClock
from bizops_kernel.domain.policy import Atomicity, MutationSettings
from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.roles import Role
from bizops_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from bizops_kernel.models import (
    Business,
    Customer,
    Partner,
    PartnerBusiness,
    PartnerContentGrant,
    User,
)
from bizops_kernel.services.mutation_facade import EntityMutationFacade


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture bizops_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, facade):
            facade.mutate(...)
            logs = captured_logs()
            assert any(r["message"] == "mutation_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("bizops_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with tables and append-only triggers."""
    init_engine_from_url("sqlite://")
    create_tables(install_triggers=True)
    register_immutability_listeners()
    yield get_engine()
    reset_engine()


@pytest.fixture
def session(engine) -> Session:
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


# =============================================================================
# Policy and facade
# =============================================================================


@pytest.fixture
def policy():
    return get_active_policy()


@pytest.fixture
def transactional_policy(policy):
    return dataclasses.replace(
        policy, mutation=MutationSettings(atomicity=Atomicity.TRANSACTIONAL)
    )


@pytest.fixture
def facade(session, policy, deterministic_clock):
    return EntityMutationFacade(session, policy, deterministic_clock)


# =============================================================================
# Seed data
# =============================================================================


def principal_for(user: User) -> Principal:
    """Principal snapshot of a user row, as PrincipalResolver would build it."""
    return Principal(
        id=user.id,
        email=user.email,
        name=user.name,
        role=Role(user.role),
        is_active=user.is_active,
    )


@pytest.fixture
def create_user(session):
    def _create(role: str = "MEMBER", name: str | None = None, is_active: bool = True) -> User:
        user = User(
            id=uuid4(),
            email=f"{uuid4().hex[:8]}@example.com",
            name=name or f"{role.title()} User",
            role=role,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        return user

    return _create


@pytest.fixture
def users(create_user):
    return {
        "admin": create_user("ADMIN", "Ada Admin"),
        "manager": create_user("MANAGER", "Mo Manager"),
        "member": create_user("MEMBER", "Mel Member"),
        "partner": create_user("PARTNER", "Pat Partner"),
        "inactive": create_user("MEMBER", "Ian Inactive", is_active=False),
    }


@pytest.fixture
def admin(users):
    return principal_for(users["admin"])


@pytest.fixture
def manager(users):
    return principal_for(users["manager"])


@pytest.fixture
def member(users):
    return principal_for(users["member"])


@pytest.fixture
def partner_principal(users):
    return principal_for(users["partner"])


@pytest.fixture
def businesses(session):
    rows = {
        key: Business(id=uuid4(), code=key.upper(), name=f"Business {key.upper()}")
        for key in ("b1", "b2", "b3")
    }
    session.add_all(rows.values())
    session.commit()
    return rows


@pytest.fixture
def partner(session, users, businesses):
    """The Partner row linked to users["partner"], with the grants above."""
    b1, b2 = businesses["b1"].id, businesses["b2"].id
    row = Partner(
        id=uuid4(),
        user_id=users["partner"].id,
        name="Pat Partner",
        company="Acme Advisory",
        business_grants=[
            PartnerBusiness(business_id=b1, can_edit=True),
            PartnerBusiness(business_id=b2, can_edit=False),
        ],
        content_grants=[
            PartnerContentGrant(business_id=b1, content_type="customers", permission_level="edit"),
            PartnerContentGrant(business_id=b1, content_type="payments", permission_level="edit"),
            PartnerContentGrant(business_id=b2, content_type="customers", permission_level="view"),
        ],
    )
    session.add(row)
    session.commit()
    return row


@pytest.fixture
def customers(session, businesses):
    rows = {
        key: Customer(
            id=uuid4(),
            business_id=businesses[f"b{index}"].id,
            name=f"Customer {key.upper()}",
            email=f"{key}@example.com",
        )
        for index, key in enumerate(("c1", "c2", "c3"), start=1)
    }
    session.add_all(rows.values())
    session.commit()
    return rows


@pytest.fixture
def as_principal():
    """Build a Principal from a User row."""
    return principal_for
