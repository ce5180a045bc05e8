# src/simpleorm/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
This file provides fixtures available to all tests in the package.

Instead of a PostgreSQL server the tests run against FakeConnection, an
in-memory connection that understands the statements simpleorm generates
and raises real psycopg errors. It is installed through
db.set_connection_override(), the same seam a live test database uses.
"""

import os

# Set environment BEFORE importing any package modules
os.environ["SIMPLEORM_ENV"] = "test"

import re
from types import SimpleNamespace

import psycopg
import pytest

from simpleorm import db
from simpleorm.config import config
from simpleorm.record import Record

# =============================================================================
# In-memory Connection
# =============================================================================

TABLE = r'"(?P<schema>[^"]+)"\."(?P<table>[^"]+)"'

SET_SEARCH_PATH = re.compile(r'^SET search_path TO "(?P<schema>[^"]+)"$')
SELECT = re.compile(
    rf'^SELECT \* FROM {TABLE}'
    r'(?: WHERE "(?P<field>[^"]+)" (?P<op>=|LIKE) %s)?(?P<limit> LIMIT 1)?$'
)
COUNT = re.compile(rf"^SELECT COUNT\(\*\) AS total FROM {TABLE}$")
INSERT = re.compile(
    rf"^INSERT INTO {TABLE} "
    r'(?:\((?P<columns>[^)]*)\) VALUES \([^)]*\)|DEFAULT VALUES)(?: RETURNING "(?P<returning>[^"]+)")?$'
)
UPDATE = re.compile(rf'^UPDATE {TABLE} SET (?P<assignments>.+) WHERE "(?P<pk>[^"]+)" = %s$')
DELETE = re.compile(rf'^DELETE FROM {TABLE} WHERE "(?P<pk>[^"]+)" = %s$')
TRUNCATE = re.compile(rf"^TRUNCATE {TABLE}$")


class FakeTable:
    def __init__(self, columns, pk="id", defaults=None):
        self.columns = list(columns)
        self.pk = pk
        self.defaults = defaults or {}
        self.rows = []
        self.next_id = 1

    def check(self, names):
        for name in names:
            if name not in self.columns:
                raise psycopg.errors.UndefinedColumn(f'column "{name}" does not exist')

    def insert(self, values: dict) -> dict:
        self.check(values)
        row = {column: self.defaults.get(column) for column in self.columns}
        row.update(values)
        if self.pk in self.columns:
            if row[self.pk] is None:
                row[self.pk] = self.next_id
            if any(existing[self.pk] == row[self.pk] for existing in self.rows):
                raise psycopg.errors.UniqueViolation(f'duplicate key value violates unique constraint "{self.pk}"')
            self.next_id = max(self.next_id, row[self.pk]) + 1
        self.rows.append(row)
        return row

    def where(self, field, op, value) -> list[dict]:
        self.check([field])
        if op == "LIKE":
            pattern = re.compile(
                "^" + ".*".join(re.escape(part) for part in str(value).split("%")) + "$", re.S
            )
            return [row for row in self.rows if row[field] is not None and pattern.match(str(row[field]))]
        return [row for row in self.rows if row[field] == value]


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self.conn = conn
        self.rows = []
        self.description = None
        self.rowcount = -1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.conn.statements.append((query, params))
        for i, (prefix, error) in enumerate(self.conn.failures):
            if query.startswith(prefix):
                del self.conn.failures[i]
                raise error
        self.rows, columns, self.rowcount = self.conn.dispatch(query, tuple(params or ()))
        self.description = [SimpleNamespace(name=c) for c in columns] if columns is not None else None

    def fetchone(self):
        return dict(self.rows.pop(0)) if self.rows else None

    def fetchall(self):
        rows = [dict(row) for row in self.rows]
        self.rows = []
        return rows


class FakeConnection:
    """Just enough of psycopg.Connection for simpleorm's statements."""

    def __init__(self, autocommit=True):
        self.autocommit = autocommit
        self.tables: dict[tuple[str, str], FakeTable] = {}
        self.statements: list[tuple[str, tuple]] = []
        self.failures: list[tuple[str, Exception]] = []
        self.search_path = None
        self.commits = 0
        self.rollbacks = 0

    def add_table(self, schema, name, columns, pk="id", defaults=None) -> FakeTable:
        table = FakeTable(columns, pk=pk, defaults=defaults)
        self.tables[(schema, name)] = table
        return table

    def table(self, schema, name) -> FakeTable:
        try:
            return self.tables[(schema, name)]
        except KeyError:
            raise psycopg.errors.UndefinedTable(f'relation "{schema}.{name}" does not exist') from None

    def fail_next(self, error: Exception, when: str = "") -> None:
        """Raise ``error`` from the next statement starting with ``when``."""
        self.failures.append((when, error))

    @property
    def sql(self) -> list[str]:
        """Text of every statement executed so far."""
        return [query for query, _ in self.statements]

    def cursor(self, row_factory=None):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        pass

    def dispatch(self, query: str, params: tuple):
        """Returns (rows, column names or None, rowcount)."""
        if "information_schema.columns" in query:
            table = self.tables.get(params)
            rows = [{"column_name": c} for c in table.columns] if table else []
            return rows, ["column_name"], len(rows)

        if m := SET_SEARCH_PATH.match(query):
            self.search_path = m["schema"]
            return [], None, -1

        if m := SELECT.match(query):
            table = self.table(m["schema"], m["table"])
            rows = table.where(m["field"], m["op"], params[0]) if m["field"] else list(table.rows)
            if m["limit"]:
                rows = rows[:1]
            return rows, table.columns, len(rows)

        if m := COUNT.match(query):
            table = self.table(m["schema"], m["table"])
            return [{"total": len(table.rows)}], ["total"], 1

        if m := INSERT.match(query):
            table = self.table(m["schema"], m["table"])
            names = re.findall(r'"([^"]+)"', m["columns"] or "")
            row = table.insert(dict(zip(names, params)))
            if m["returning"]:
                return [{m["returning"]: row[m["returning"]]}], [m["returning"]], 1
            return [], None, 1

        if m := UPDATE.match(query):
            table = self.table(m["schema"], m["table"])
            names = re.findall(r'"([^"]+)" = %s', m["assignments"])
            table.check(names)
            matched = table.where(m["pk"], "=", params[-1])
            for row in matched:
                row.update(zip(names, params[:-1]))
            return [], None, len(matched)

        if m := DELETE.match(query):
            table = self.table(m["schema"], m["table"])
            matched = table.where(m["pk"], "=", params[0])
            table.rows = [row for row in table.rows if row not in matched]
            return [], None, len(matched)

        if m := TRUNCATE.match(query):
            table = self.table(m["schema"], m["table"])
            table.rows = []
            return [], None, -1

        raise psycopg.errors.SyntaxError(f"syntax error at or near {query!r}")


# =============================================================================
# Record Types
# =============================================================================


class Post(Record):
    table = "posts"

    def __str__(self):
        return self.get("title") or ""


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def connection_factory():
    """The FakeConnection class, for tests that need a connection of their own."""
    return FakeConnection


@pytest.fixture
def fake_connection():
    """A connection with an empty ``public.posts`` table."""
    conn = FakeConnection()
    conn.add_table(
        "public",
        "posts",
        ["id", "title", "body", "is_public", "views"],
        defaults={"is_public": False, "views": 0},
    )
    return conn


@pytest.fixture
def database(fake_connection):
    """
    Configure the process-wide handle on the fake connection.

    The statement log is cleared after setup so tests only see their own SQL.
    """
    db.set_connection_override(fake_connection)
    handle = db.use_connection(fake_connection, "public")
    fake_connection.statements.clear()

    yield handle

    db.clear_connection_override()
    db.reset()


@pytest.fixture
def posts_table(fake_connection) -> FakeTable:
    return fake_connection.tables[("public", "posts")]


@pytest.fixture
def post_type(database):
    """The Post record type, with a connection configured."""
    return Post


# =============================================================================
# Live Database Fixtures
# =============================================================================

LIVE_SCHEMA = "simpleorm_test"

LIVE_POSTS_DDL = f"""
    CREATE TABLE {LIVE_SCHEMA}.posts (
        id SERIAL PRIMARY KEY,
        title TEXT,
        body TEXT,
        is_public BOOLEAN DEFAULT FALSE,
        views INTEGER DEFAULT 0
    )
"""


@pytest.fixture
def live_database():
    """
    Configure the process-wide handle on a real PostgreSQL connection.

    Skipped unless DATABASE_URL is set (for example in .env.test). The
    schema and table are created inside the test's transaction, which is
    rolled back at the end, so nothing is left behind in the database.
    """
    if not config.database_url:
        pytest.skip("DATABASE_URL is not set")

    conn = psycopg.connect(config.database_url)
    with conn.cursor() as cur:
        cur.execute(f"DROP SCHEMA IF EXISTS {LIVE_SCHEMA} CASCADE")
        cur.execute(f"CREATE SCHEMA {LIVE_SCHEMA}")
        cur.execute(LIVE_POSTS_DDL)

    # Override the db module to use this connection
    db.set_connection_override(conn)
    handle = db.use_connection(conn, LIVE_SCHEMA)

    yield handle

    # Rollback everything, schema included
    conn.rollback()
    db.clear_connection_override()
    db.reset()
    conn.close()


# =============================================================================
# Seed Data Fixtures
# =============================================================================


@pytest.fixture
def sample_posts(database, fake_connection, posts_table) -> list[dict]:
    """Store three posts directly in the table."""
    rows = [
        posts_table.insert({"title": "Hello", "body": "World!", "is_public": True}),
        posts_table.insert({"title": "Help wanted", "body": "Anyone?", "is_public": False}),
        posts_table.insert({"title": "Goodbye", "body": "See you", "is_public": True}),
    ]
    fake_connection.statements.clear()
    return rows
