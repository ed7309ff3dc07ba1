"""
Policy Loader (``bizops_config.loader``).

Responsibility
--------------
Loads a YAML policy document and parses it into the kernel's frozen
``AccessPolicySet`` values.  Callers use ``bizops_config.get_active_policy()``;
nothing else reads policy files.

Architecture position
---------------------
**Config layer**.  Sits above ``bizops_kernel`` and translates YAML into
kernel-compatible inputs.  The kernel never imports this package.

Invariants enforced
-------------------
* Every entity named must exist in the kernel entity catalog.
* Every action key must be CREATE, UPDATE, SOFT_DELETE or DELETE, and
  every role must be a known role tag.
* ``soft_delete: true`` requires a model with a ``deleted_at`` column;
  SOFT_DELETE may only be listed for soft-deletable entities and DELETE only
  for hard-deleted ones.
* ``compute_checksum`` is a deterministic SHA-256 of the parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Any invariant above  -> ``ValueError`` with a descriptive message.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from bizops_kernel.domain.policy import (
    AccessPolicySet,
    Atomicity,
    EntityPolicy,
    MutationSettings,
    OperationRule,
)
from bizops_kernel.domain.roles import ContentType, Role
from bizops_kernel.models.audit_log import AuditAction
from bizops_kernel.models.registry import ENTITY_REGISTRY


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_enum(enum_cls, value: Any, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"Unknown {what}: {value!r}") from None


def parse_operations(entity: str, data: dict[str, Any]) -> dict[AuditAction, OperationRule]:
    """Parse ``{ACTION: {min_role: ROLE}}`` into OperationRules."""
    rules: dict[AuditAction, OperationRule] = {}
    for action_key, rule in (data or {}).items():
        action = _parse_enum(AuditAction, action_key, f"action for {entity}")
        min_role = _parse_enum(Role, rule["min_role"], f"role for {entity}.{action_key}")
        rules[action] = OperationRule(action=action, min_role=min_role)
    return rules


def parse_entity_policy(entity: str, data: dict[str, Any]) -> EntityPolicy:
    """
    Parse one entity block.

    Raises:
        ValueError: If the entity is unknown or its delete settings
            contradict the model.
    """
    descriptor = ENTITY_REGISTRY.get(entity)
    if descriptor is None:
        raise ValueError(f"Unknown entity in policy: {entity!r}")

    content_type = None
    if data.get("content_type") is not None:
        content_type = _parse_enum(ContentType, data["content_type"], f"content type for {entity}")

    soft_delete = bool(data.get("soft_delete", False))
    if soft_delete and not descriptor.supports_soft_delete:
        raise ValueError(f"{entity} has no deleted_at column; soft_delete must be false")

    operations = parse_operations(entity, data.get("operations", {}))
    if AuditAction.SOFT_DELETE in operations and not soft_delete:
        raise ValueError(f"{entity}: SOFT_DELETE listed but soft_delete is false")
    if AuditAction.DELETE in operations and soft_delete:
        raise ValueError(f"{entity}: DELETE listed for a soft-deleted entity")

    return EntityPolicy(
        entity=entity,
        content_type=content_type,
        soft_delete=soft_delete,
        versioned=bool(data.get("versioned", True)),
        operations=operations,
    )


def parse_mutation_settings(data: dict[str, Any] | None) -> MutationSettings:
    data = data or {}
    atomicity = _parse_enum(
        Atomicity, data.get("atomicity", Atomicity.INDEPENDENT.value), "atomicity"
    )
    return MutationSettings(atomicity=atomicity)


def parse_policy_set(data: dict[str, Any]) -> AccessPolicySet:
    """
    Parse a whole policy document.

    Preconditions:
        - ``data`` has ``name`` and ``entities`` keys.
    """
    entities = {
        entity: parse_entity_policy(entity, block or {})
        for entity, block in data["entities"].items()
    }
    return AccessPolicySet(
        name=data["name"],
        version=int(data.get("version", 1)),
        entities=entities,
        mutation=parse_mutation_settings(data.get("mutation")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
