"""
Database connection and query utilities.

Holds the process-wide connection that every record type uses unless it
binds its own ``Database`` handle. Configure it once with use_connection()
or connect() before touching any record.

For testing, use set_connection_override() to inject a connection
that will be used instead of the configured one. The override is never
committed, rolled back or closed by this module.
"""

import decimal
import logging
from contextlib import contextmanager
from typing import Any, Optional

import psycopg
from psycopg.rows import dict_row

from simpleorm.config import config
from simpleorm.errors import ConfigurationError, ExecutionError, PreparationError
from simpleorm.schema import SchemaIntrospector

logger = logging.getLogger(__name__)

# =============================================================================
# Connection Override (for testing)
# =============================================================================

_connection_override: Optional[psycopg.Connection] = None


def set_connection_override(conn: psycopg.Connection) -> None:
    """
    Set a connection to use instead of the configured one.

    Used by test fixtures so every statement runs on a connection the
    fixture controls.

    Args:
        conn: The connection to use for all subsequent operations
    """
    global _connection_override
    _connection_override = conn


def clear_connection_override() -> None:
    """Clear the connection override, restoring normal behavior."""
    global _connection_override
    _connection_override = None


# =============================================================================
# Identifiers
# =============================================================================


def quote_identifier(name: str) -> str:
    """Quote a table, schema or column name for PostgreSQL."""
    return '"' + str(name).replace('"', '""') + '"'


# =============================================================================
# Statement Execution
# =============================================================================


def run(cur, query: str, params: tuple = None) -> None:
    """
    Execute a statement on a cursor, translating driver errors.

    A statement the server cannot compile (syntax errors, unknown tables or
    columns, placeholder mismatches) raises PreparationError. Anything else
    the driver reports raises ExecutionError. Both carry the SQL text.
    """
    try:
        cur.execute(query, params)
    except psycopg.ProgrammingError as e:
        logger.warning("Statement could not be prepared: %s", e)
        raise PreparationError(f"Unable to prepare statement. {e}", sql=query) from e
    except psycopg.Error as e:
        logger.warning("Statement failed: %s", e)
        raise ExecutionError(f"Unable to execute statement. {e}", sql=query) from e


class Database:
    """
    A connection handle plus the database (PostgreSQL schema) it works in.

    Record types share the process-wide handle returned by get_database(),
    or bind their own by setting ``database_handle`` on the class.
    """

    def __init__(self, connection, name: str, cache_schema: bool = None):
        self._connection = connection
        self.name = name
        if cache_schema is None:
            cache_schema = config.cache_schema
        self.schema = SchemaIntrospector(self, cache=cache_schema)

    @property
    def connection(self):
        if _connection_override is not None:
            return _connection_override
        return self._connection

    @contextmanager
    def cursor(self):
        """
        Context manager for a cursor with dict rows.

        When the connection is not in autocommit mode the work is committed
        on success and rolled back on exception. With an override set the
        caller (test fixture) manages the transaction.

        Usage:
            with database.cursor() as cur:
                db.run(cur, "SELECT ...")
                rows = cur.fetchall()  # List of dicts
        """
        if _connection_override is not None:
            with _connection_override.cursor(row_factory=dict_row) as cur:
                yield cur
            return

        conn = self._connection
        try:
            with conn.cursor(row_factory=dict_row) as cur:
                yield cur
            if not conn.autocommit:
                conn.commit()
        except Exception:
            if not conn.autocommit:
                conn.rollback()
            raise

    def select_database(self, name: str) -> None:
        """Point unqualified statements at ``name`` for this connection."""
        self.execute(f"SET search_path TO {quote_identifier(name)}")
        self.name = name

    # -------------------------------------------------------------------------
    # Query Helpers
    # -------------------------------------------------------------------------

    def execute(self, query: str, params: tuple = None) -> int:
        """
        Execute a statement without returning results.

        Returns:
            Number of rows affected, as reported by the driver
        """
        with self.cursor() as cur:
            run(cur, query, params)
            return cur.rowcount

    def fetch_one(self, query: str, params: tuple = None) -> Optional[dict[str, Any]]:
        """
        Execute a query and return a single row as dict.

        Returns:
            Dict of column names to values, or None if no row found
        """
        with self.cursor() as cur:
            run(cur, query, params)
            return cur.fetchone()

    def fetch_all(self, query: str, params: tuple = None) -> list[dict[str, Any]]:
        """
        Execute a query and return all rows as list of dicts.

        Returns:
            List of dicts, empty list if no rows found
        """
        with self.cursor() as cur:
            run(cur, query, params)
            return cur.fetchall()

    def fetch_dataframe(self, query: str, params: tuple = None):
        """
        Execute a query and return results as pandas DataFrame.

        Returns:
            pandas.DataFrame with query results
        """
        import pandas as pd

        with self.cursor() as cur:
            run(cur, query, params)
            rows = cur.fetchall()
            columns = [desc.name for desc in cur.description] if cur.description else []
        df = pd.DataFrame(rows, columns=columns)
        # Convert decimal.Decimal columns to float for numeric compatibility
        for col in df.columns:
            if len(df) and df[col].apply(lambda x: isinstance(x, decimal.Decimal)).all():
                df[col] = df[col].astype(float)
        return df


# =============================================================================
# Process-wide Connection
# =============================================================================

_database: Optional[Database] = None


def use_connection(conn: psycopg.Connection, database: str) -> Database:
    """
    Give every record type a connection to work with.

    This is the one setup call the package expects before any record is
    loaded or saved. The database name becomes the default for record types
    that do not declare their own.

    Args:
        conn: An open psycopg connection
        database: PostgreSQL schema to select and use by default

    Returns:
        The process-wide Database handle
    """
    global _database
    handle = Database(conn, database)
    handle.select_database(database)
    _database = handle
    logger.info("Using database %s", database)
    return handle


def connect(url: str = None, database: str = None) -> Database:
    """
    Open a connection from configuration and make it the process-wide one.

    The connection runs in autocommit mode: every statement stands alone.
    """
    url = url or config.database_url
    if not url:
        raise ConfigurationError("No database URL given and DATABASE_URL is not set")

    conn = psycopg.connect(url, autocommit=True)
    return use_connection(conn, database or config.database)


def get_database() -> Database:
    """Return the process-wide handle, failing if none was configured."""
    if _database is None:
        raise ConfigurationError(
            "No connection configured, call simpleorm.db.use_connection() first"
        )
    return _database


def reset() -> None:
    """Forget the process-wide handle. The connection itself is left open."""
    global _database
    _database = None
