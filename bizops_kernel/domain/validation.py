"""
Mutation payload validation.

Responsibility:
    Reject malformed CREATE / UPDATE payloads before the store is touched and
    normalize accepted ones (UUID coercion, derived totals, status
    timestamps).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Called by the Entity Mutation Facade
    in its input stage.

Failure modes:
    - ValidationError carrying one field_errors dict per problem
      ({"field": ..., "message": ...}).  All problems are reported at once.
"""

import re
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from bizops_kernel.exceptions import ValidationError
from bizops_kernel.models.payment import PAYMENT_TRANSITIONS, PaymentStatus

READ_ONLY_FIELDS = frozenset({"id", "created_at", "updated_at", "deleted_at"})

_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class _Errors:
    def __init__(self) -> None:
        self.items: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.items.append({"field": field, "message": message})


def _require_name(payload: dict, field: str, creating: bool, errors: _Errors) -> None:
    if field not in payload:
        if creating:
            errors.add(field, "required")
        return
    value = payload[field]
    if not isinstance(value, str) or not value.strip():
        errors.add(field, "must be a non-empty string")
    else:
        payload[field] = value.strip()


def _coerce_uuid(
    payload: dict, field: str, required: bool, errors: _Errors
) -> None:
    if field not in payload or payload[field] is None:
        if required:
            errors.add(field, "required")
        return
    value = payload[field]
    if isinstance(value, UUID):
        return
    try:
        payload[field] = UUID(str(value))
    except ValueError:
        errors.add(field, "must be a UUID")


def _non_negative_int(payload: dict, field: str, required: bool, errors: _Errors) -> None:
    if field not in payload:
        if required:
            errors.add(field, "required")
        return
    value = payload[field]
    if isinstance(value, bool) or not isinstance(value, int):
        errors.add(field, "must be an integer")
    elif value < 0:
        errors.add(field, "must not be negative")


def _optional_str(payload: dict, field: str, errors: _Errors) -> None:
    if field in payload and payload[field] is not None and not isinstance(payload[field], str):
        errors.add(field, "must be a string")


# Per-entity rules.  Each receives the mutable payload copy, whether this is a
# CREATE, the current row (UPDATE only), the current time and the error sink.


def _customer(payload, creating, current, now, errors) -> None:
    _require_name(payload, "name", creating, errors)
    _coerce_uuid(payload, "business_id", creating, errors)
    for field in ("email", "phone", "note"):
        _optional_str(payload, field, errors)


def _payment(payload, creating, current, now, errors) -> None:
    _coerce_uuid(payload, "business_id", creating, errors)
    _coerce_uuid(payload, "partner_id", False, errors)
    _coerce_uuid(payload, "customer_id", False, errors)
    _non_negative_int(payload, "amount", False, errors)
    _non_negative_int(payload, "tax", False, errors)
    for field in ("payment_type", "note"):
        _optional_str(payload, field, errors)
    if "total_amount" in payload:
        errors.add("total_amount", "derived from amount and tax")
    if payload.get("period") is not None and not _PERIOD_RE.match(str(payload["period"])):
        errors.add("period", "must be YYYY-MM")

    current_status = PaymentStatus(current.status) if current is not None else None

    if "status" in payload:
        try:
            new_status = PaymentStatus(payload["status"])
        except ValueError:
            errors.add("status", f"unknown status {payload['status']!r}")
            new_status = None
        if new_status is not None:
            payload["status"] = new_status.value
            if creating and new_status is not PaymentStatus.DRAFT:
                errors.add("status", "new payments start as DRAFT")
            elif current_status is not None and new_status is not current_status:
                allowed = PAYMENT_TRANSITIONS[current_status]
                if new_status not in allowed:
                    errors.add(
                        "status",
                        f"cannot move from {current_status.value} to {new_status.value}",
                    )
                elif new_status is PaymentStatus.PAID:
                    payload["paid_at"] = now

    if "amount" in payload or "tax" in payload or creating:
        amount = payload.get("amount", current.amount if current is not None else 0)
        tax = payload.get("tax", current.tax if current is not None else 0)
        if isinstance(amount, int) and isinstance(tax, int):
            payload["total_amount"] = amount + tax


def _budget(payload, creating, current, now, errors) -> None:
    _require_name(payload, "category", creating, errors)
    _coerce_uuid(payload, "business_id", False, errors)
    _non_negative_int(payload, "amount", creating, errors)
    _optional_str(payload, "note", errors)
    if "period" in payload:
        if not isinstance(payload["period"], str) or not _PERIOD_RE.match(payload["period"]):
            errors.add("period", "must be YYYY-MM")
    elif creating:
        errors.add("period", "required")


def _workflow_template(payload, creating, current, now, errors) -> None:
    _require_name(payload, "name", creating, errors)
    _coerce_uuid(payload, "business_id", creating, errors)
    _optional_str(payload, "description", errors)
    if "steps" in payload:
        steps = payload["steps"]
        if not isinstance(steps, list):
            errors.add("steps", "must be a list")
        else:
            for index, step in enumerate(steps):
                if not isinstance(step, Mapping) or not str(step.get("title", "")).strip():
                    errors.add(f"steps[{index}].title", "required")


def _partner(payload, creating, current, now, errors) -> None:
    _require_name(payload, "name", creating, errors)
    _coerce_uuid(payload, "user_id", False, errors)
    _optional_str(payload, "company", errors)


VALIDATORS: dict[str, Callable[..., None]] = {
    "Customer": _customer,
    "Payment": _payment,
    "Budget": _budget,
    "WorkflowTemplate": _workflow_template,
    "Partner": _partner,
}


def validate_payload(
    entity: str,
    payload: Mapping[str, Any] | None,
    *,
    creating: bool,
    allowed_fields: frozenset[str],
    current: Any = None,
    now: datetime | None = None,
) -> dict:
    """
    Validate and normalize a CREATE / UPDATE payload.

    Args:
        entity: Entity type name.
        payload: Field values supplied by the caller.
        creating: True for CREATE, False for UPDATE.
        allowed_fields: Column names the entity accepts.
        current: The row being updated (UPDATE only).
        now: Timestamp for derived status timestamps.

    Returns:
        A new, normalized dict.  The input is not modified.

    Raises:
        ValidationError: If any field is malformed.
    """
    errors = _Errors()
    data = dict(payload or {})

    for field in sorted(data):
        if field in READ_ONLY_FIELDS:
            errors.add(field, "read-only")
        elif field not in allowed_fields:
            errors.add(field, "unknown field")

    validator = VALIDATORS.get(entity)
    if validator is not None:
        validator(data, creating, current, now, errors)

    if errors.items:
        raise ValidationError(entity, errors.items)

    return data
