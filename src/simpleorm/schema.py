"""
Read-only table introspection.
"""

import logging
from typing import Optional

from simpleorm.errors import OrmError, SchemaError

logger = logging.getLogger(__name__)

COLUMNS_QUERY = (
    "SELECT column_name FROM information_schema.columns "
    "WHERE table_schema = %s AND table_name = %s "
    "ORDER BY ordinal_position"
)


class SchemaIntrospector:
    """
    Looks up the ordered column names of a table.

    Every call goes to the database unless ``cache`` is set, in which case
    results are kept per (database, table) until invalidate() is called.
    Nothing invalidates the cache automatically.
    """

    def __init__(self, database, cache: bool = False):
        self.database = database
        self.cache = cache
        self._columns: dict[tuple[str, str], list[str]] = {}

    def columns(self, database: str, table: str) -> list[str]:
        """Column names of ``database.table`` in table order."""
        key = (database, table)
        if self.cache and key in self._columns:
            return list(self._columns[key])

        try:
            rows = self.database.fetch_all(COLUMNS_QUERY, (database, table))
        except OrmError as e:
            raise SchemaError(
                f"Unable to fetch the column names of {database}.{table}. {e.message}",
                sql=COLUMNS_QUERY,
            ) from e

        if not rows:
            raise SchemaError(
                f"Unable to fetch the column names of {database}.{table}. No such table.",
                sql=COLUMNS_QUERY,
            )

        names = [row["column_name"] for row in rows]
        if self.cache:
            self._columns[key] = names
            logger.debug("Cached %d columns for %s.%s", len(names), database, table)
        return list(names)

    def invalidate(self, database: Optional[str] = None, table: Optional[str] = None) -> None:
        """
        Drop cached column lists.

        With no arguments everything is dropped; otherwise only entries
        matching the given database and/or table.
        """
        for key in list(self._columns):
            if database is not None and key[0] != database:
                continue
            if table is not None and key[1] != table:
                continue
            del self._columns[key]
