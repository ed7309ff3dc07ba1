"""
ORM-Level Append-Only Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The audit log and the data version history are the record of who changed
what.  If either can be edited after the fact, neither can be trusted.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (PostgreSQL / SQLite triggers)
    - Catches raw SQL, bulk UPDATE statements, direct database access

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable            | Why
----------------|---------------------------|-----------------------------------
AuditLogEntry   | ALWAYS (from creation)    | Accountability record
DataVersion     | ALWAYS (from creation)    | Point-in-time reconstruction

===============================================================================
USAGE
===============================================================================

    from bizops_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event

from bizops_kernel.exceptions import ImmutabilityViolationError
from bizops_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_audit_log_immutability(mapper, connection, target):
    """Prevent any updates to AuditLogEntry records."""
    _block(
        "AuditLogEntry", target, "UPDATE",
        "Audit log entries are immutable and cannot be modified",
    )


def _check_audit_log_delete(mapper, connection, target):
    """Prevent deletion of AuditLogEntry records."""
    _block("AuditLogEntry", target, "DELETE", "Audit log entries cannot be deleted")


def _check_data_version_immutability(mapper, connection, target):
    """Prevent any updates to DataVersion records."""
    _block(
        "DataVersion", target, "UPDATE",
        "Data versions are immutable and cannot be modified",
    )


def _check_data_version_delete(mapper, connection, target):
    """Prevent deletion of DataVersion records."""
    _block("DataVersion", target, "DELETE", "Data versions cannot be deleted")


def _listeners():
    from bizops_kernel.models.audit_log import AuditLogEntry
    from bizops_kernel.models.data_version import DataVersion

    return [
        (AuditLogEntry, "before_update", _check_audit_log_immutability),
        (AuditLogEntry, "before_delete", _check_audit_log_delete),
        (DataVersion, "before_update", _check_data_version_immutability),
        (DataVersion, "before_delete", _check_data_version_delete),
    ]


def register_immutability_listeners():
    """
    Register all append-only enforcement event listeners.

    Idempotent: listeners already registered are left in place.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove a listener if present."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Unregister all append-only enforcement listeners.

    WARNING: Only for testing the database-level triggers in isolation.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)


def listeners_registered() -> bool:
    """True iff every append-only listener is registered."""
    return all(
        event.contains(target, event_name, listener_fn)
        for target, event_name, listener_fn in _listeners()
    )
