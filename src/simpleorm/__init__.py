"""
simpleorm

A small record/table mapper for PostgreSQL built on psycopg. Each Record
subclass is bound to one table and knows how to load, insert, update and
delete its rows.
"""

from simpleorm.db import Database, connect, get_database, use_connection
from simpleorm.errors import (
    ConfigurationError,
    DispatchError,
    ExecutionError,
    NotFoundError,
    OrmError,
    PreparationError,
    SchemaError,
    StateError,
    ValidationError,
)
from simpleorm.query import Cardinality
from simpleorm.record import LoadStrategy, Record

__all__ = [
    "Cardinality",
    "ConfigurationError",
    "Database",
    "DispatchError",
    "ExecutionError",
    "LoadStrategy",
    "NotFoundError",
    "OrmError",
    "PreparationError",
    "Record",
    "SchemaError",
    "StateError",
    "ValidationError",
    "connect",
    "get_database",
    "use_connection",
]
