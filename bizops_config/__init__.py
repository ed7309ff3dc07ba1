"""
bizops_config -- single public entrypoint for access policy configuration.

Responsibility:
    Provides the ONLY way to obtain the access policy at runtime through
    ``get_active_policy()``, and the database URL through
    ``get_database_url()``.  No other component reads policy files or
    environment variables.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``bizops_kernel``; the kernel
    MUST NEVER import from ``bizops_config``.

Failure modes:
    - ``FileNotFoundError`` -- no policy set with the requested name.
    - ``ValueError`` -- structural validation failures.

Audit relevance:
    Every successful ``get_active_policy()`` call emits a ``policy_loaded``
    log entry with the policy name, version and checksum, tying each
    mutation decision to the exact policy document that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from bizops_config.loader import load_yaml_file, parse_policy_set
from bizops_kernel.domain.policy import AccessPolicySet

_logger = logging.getLogger("bizops_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DATABASE_URL_ENV = "BIZOPS_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite://"


def get_active_policy(
    name: str = "default",
    config_dir: Path | None = None,
) -> AccessPolicySet:
    """The ONLY public policy entrypoint.

    Non-goals:
        - No caching across calls; callers hold the returned policy for the
          lifetime of their facade.

    Args:
        name: Policy set name; ``<config_dir>/<name>.yaml`` is loaded.
        config_dir: Override path to the policy sets directory.
            Defaults to bizops_config/sets/.

    Raises:
        FileNotFoundError: If the policy set does not exist.
        ValueError: If the document fails validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = Path(sets_dir) / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Policy set not found: {path}")

    policy = parse_policy_set(load_yaml_file(path))

    _logger.info(
        "policy_loaded",
        extra={
            "policy_name": policy.name,
            "policy_version": policy.version,
            "checksum": policy.checksum,
            "entity_count": len(policy.entities),
            "atomicity": policy.mutation.atomicity.value,
        },
    )
    return policy


def get_database_url() -> str:
    """Database URL from BIZOPS_DATABASE_URL, defaulting to in-memory SQLite."""
    return os.environ.get(DATABASE_URL_ENV, DEFAULT_DATABASE_URL)


__all__ = [
    "get_active_policy",
    "get_database_url",
]
