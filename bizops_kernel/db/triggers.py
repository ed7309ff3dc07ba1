"""
Module: bizops_kernel.db.triggers
Responsibility: Installing, removing and verifying the database-level
    append-only triggers on audit_logs and data_versions (Layer 2 of 2).
    Complements the ORM-level listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.

Invariants enforced:
    - audit_logs rows: no UPDATE, no DELETE.
    - data_versions rows: no UPDATE, no DELETE.

Failure modes:
    - PostgreSQL RAISE EXCEPTION / SQLite RAISE(ABORT) on any violation,
      surfaced by SQLAlchemy as a DatabaseError subclass.
    - NotImplementedError for dialects other than postgresql and sqlite.

Audit relevance:
    These triggers catch raw SQL, bulk statements and direct database access
    that never pass through the ORM listeners.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from bizops_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

APPEND_ONLY_TABLES = ("audit_logs", "data_versions")

ALL_TRIGGER_NAMES = [
    f"trg_{table}_immutability_{op}"
    for table in APPEND_ONLY_TABLES
    for op in ("update", "delete")
]

_PG_FUNCTION = """
CREATE OR REPLACE FUNCTION bizops_reject_append_only_change()
RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION '% rows are append-only (% blocked)', TG_TABLE_NAME, TG_OP
        USING ERRCODE = 'restrict_violation';
END;
$$ LANGUAGE plpgsql
"""


def _postgres_install_statements() -> list[str]:
    statements = [_PG_FUNCTION]
    for table in APPEND_ONLY_TABLES:
        for op in ("update", "delete"):
            name = f"trg_{table}_immutability_{op}"
            statements.append(f"DROP TRIGGER IF EXISTS {name} ON {table}")
            statements.append(
                f"CREATE TRIGGER {name} BEFORE {op.upper()} ON {table} "
                f"FOR EACH ROW EXECUTE FUNCTION bizops_reject_append_only_change()"
            )
    return statements


def _postgres_drop_statements() -> list[str]:
    statements = [
        f"DROP TRIGGER IF EXISTS trg_{table}_immutability_{op} ON {table}"
        for table in APPEND_ONLY_TABLES
        for op in ("update", "delete")
    ]
    statements.append("DROP FUNCTION IF EXISTS bizops_reject_append_only_change()")
    return statements


def _sqlite_install_statements() -> list[str]:
    statements = []
    for table in APPEND_ONLY_TABLES:
        for op in ("update", "delete"):
            name = f"trg_{table}_immutability_{op}"
            statements.append(
                f"CREATE TRIGGER IF NOT EXISTS {name} BEFORE {op.upper()} ON {table} "
                f"BEGIN SELECT RAISE(ABORT, '{table} rows are append-only'); END"
            )
    return statements


def _sqlite_drop_statements() -> list[str]:
    return [f"DROP TRIGGER IF EXISTS {name}" for name in ALL_TRIGGER_NAMES]


def _statements_for(engine: Engine, install: bool) -> list[str]:
    dialect = engine.dialect.name
    if dialect == "postgresql":
        return _postgres_install_statements() if install else _postgres_drop_statements()
    if dialect == "sqlite":
        return _sqlite_install_statements() if install else _sqlite_drop_statements()
    raise NotImplementedError(f"Append-only triggers not available for {dialect}")


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level append-only triggers.

    Preconditions: Tables must exist (call after create_all()).
    Postconditions: Every trigger in ALL_TRIGGER_NAMES is installed.
        Installation is idempotent.
    """
    with engine.connect() as conn:
        for statement in _statements_for(engine, install=True):
            conn.execute(text(statement))
        conn.commit()

    logger.info(
        "immutability_triggers_installed",
        extra={"dialect": engine.dialect.name, "trigger_count": len(ALL_TRIGGER_NAMES)},
    )


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove database-level append-only triggers.

    WARNING: Only for migrations and test teardown.  Re-install immediately.
    """
    with engine.connect() as conn:
        for statement in _statements_for(engine, install=False):
            conn.execute(text(statement))
        conn.commit()

    logger.warning(
        "immutability_triggers_removed",
        extra={"dialect": engine.dialect.name},
    )


def get_installed_triggers(engine: Engine) -> list[str]:
    """List the append-only triggers currently present in the database."""
    names = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    if engine.dialect.name == "postgresql":
        query = f"SELECT tgname FROM pg_trigger WHERE tgname IN ({names}) ORDER BY tgname"
    else:
        query = (
            "SELECT name FROM sqlite_master "
            f"WHERE type = 'trigger' AND name IN ({names}) ORDER BY name"
        )

    with engine.connect() as conn:
        return [row[0] for row in conn.execute(text(query))]


def triggers_installed(engine: Engine) -> bool:
    """True iff every append-only trigger is installed."""
    return len(get_installed_triggers(engine)) == len(ALL_TRIGGER_NAMES)
