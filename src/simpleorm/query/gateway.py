"""
Statement execution.

Runs compiled statements through a Database handle and turns result rows
into records of the requesting type.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from simpleorm.db import Database, run
from simpleorm.errors import ValidationError
from simpleorm.query.builder import Statement

logger = logging.getLogger(__name__)


class Cardinality(Enum):
    """Shape of a query result."""

    ONE = 1  # first record, or None
    MANY = 2  # list of records
    NONE = 3  # nothing is fetched


@dataclass(frozen=True)
class ExecutionResult:
    affected_rows: int
    generated_key: Any = None


def _log(statement: Statement) -> None:
    logger.debug("%s [%s] %r", statement.sql, statement.type_string, statement.params)


def execute(database: Database, statement: Statement) -> ExecutionResult:
    """
    Execute a write statement.

    When the statement names a ``returning`` column, the value the database
    reports for it is returned as the generated key.
    """
    _log(statement)
    with database.cursor() as cur:
        run(cur, statement.sql, statement.params)
        generated_key = None
        if statement.returning and cur.description is not None:
            row = cur.fetchone()
            if row:
                generated_key = row.get(statement.returning)
        return ExecutionResult(cur.rowcount, generated_key)


def fetch_row(database: Database, statement: Statement) -> Optional[dict[str, Any]]:
    _log(statement)
    return database.fetch_one(statement.sql, statement.params or None)


def fetch_records(record_type, statement: Statement, cardinality: Cardinality = Cardinality.MANY):
    """
    Run a query and hydrate its rows into ``record_type`` instances.

    Returns:
        A record or None for ONE, a list for MANY, None for NONE
    """
    if not isinstance(cardinality, Cardinality):
        raise ValidationError(f"Unknown cardinality {cardinality!r}")

    database = record_type.get_database()
    params = statement.params or None
    _log(statement)

    if cardinality is Cardinality.NONE:
        database.execute(statement.sql, params)
        return None

    if cardinality is Cardinality.ONE:
        row = database.fetch_one(statement.sql, params)
        return record_type.hydrate(row) if row is not None else None

    return [record_type.hydrate(row) for row in database.fetch_all(statement.sql, params)]


def coerce_count(row: Optional[dict[str, Any]]) -> int:
    """First column of ``row`` as a count; anything absent or not positive is 0."""
    if not row:
        return 0
    value = next(iter(row.values()))
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return 0
    return int(value) if value > 0 else 0
