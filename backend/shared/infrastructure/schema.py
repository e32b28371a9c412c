"""
Fixed schema contract.

The service is built against one known schema. At startup the live database
is compared with the mapped metadata and with the version stamped in the
schema_version table; a mismatch refuses startup instead of guessing column
names at runtime.
"""

from sqlalchemy import Connection, Engine, MetaData, inspect, text

from shared.config.logging import get_logger

logger = get_logger(__name__)

# Bump whenever a mapped table or column changes
SCHEMA_VERSION = 1

VERSION_TABLE = "schema_version"


def read_schema_version(bind: Engine | Connection) -> int | None:
    """Stored contract version, or None when the table is missing or empty."""
    if not inspect(bind).has_table(VERSION_TABLE):
        return None
    query = text(f"SELECT MAX(version) FROM {VERSION_TABLE}")
    if isinstance(bind, Connection):
        return bind.execute(query).scalar()
    with bind.connect() as conn:
        return conn.execute(query).scalar()


def verify_schema(bind: Engine | Connection, metadata: MetaData) -> list[str]:
    """
    Compare the database with the mapped metadata.
    Accepts an engine or an open connection (to check inside a transaction).
    Returns a list of problems. Empty list means the contract holds.
    """
    problems: list[str] = []
    inspector = inspect(bind)

    for table in metadata.sorted_tables:
        if not inspector.has_table(table.name):
            problems.append(f"missing table {table.name}")
            continue
        existing = {col["name"] for col in inspector.get_columns(table.name)}
        for column in table.columns:
            if column.name not in existing:
                problems.append(f"missing column {table.name}.{column.name}")

    stored = read_schema_version(bind)
    if stored != SCHEMA_VERSION:
        problems.append(f"schema version is {stored}, expected {SCHEMA_VERSION}")

    return problems


def stamp_schema_version(engine: Engine) -> None:
    """Record SCHEMA_VERSION as the only row of the version table."""
    with engine.begin() as conn:
        conn.execute(text(f"DELETE FROM {VERSION_TABLE}"))
        conn.execute(
            text(f"INSERT INTO {VERSION_TABLE} (version) VALUES (:version)"),
            {"version": SCHEMA_VERSION},
        )


def ensure_schema(engine: Engine, metadata: MetaData, auto_create: bool = False) -> None:
    """
    Verify the schema contract, creating the schema first when allowed.

    Raises RuntimeError when the contract does not hold.
    """
    problems = verify_schema(engine, metadata)
    if problems and auto_create:
        logger.warning("Schema contract not met, creating schema", problems=problems)
        metadata.create_all(bind=engine)
        stamp_schema_version(engine)
        problems = verify_schema(engine, metadata)

    if problems:
        raise RuntimeError(f"Database schema contract not met: {'; '.join(problems)}")

    logger.info("Schema contract verified", version=SCHEMA_VERSION)
