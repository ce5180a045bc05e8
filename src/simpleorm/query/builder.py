"""
Statement compilation.

Builds parameterized INSERT, UPDATE, DELETE and SELECT statements for a
single table. Identifiers are quoted, values are always bound as ``%s``
parameters.

Each parameter is classified as a BindType and the classification is kept
on the Statement, where the gateway logs it. It is not passed to the
driver: psycopg picks the PostgreSQL type from the Python type of each
value. A bool is classed as TEXT here but still reaches the server as a
boolean, and integers and floats are only normalised to plain ``int`` and
``float`` before binding.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from simpleorm.db import quote_identifier
from simpleorm.errors import ValidationError


@dataclass(frozen=True)
class TableDescriptor:
    """Where a record type lives: database (schema), table and primary key."""

    database: str
    table: str
    pk: str = "id"

    @property
    def qualified_name(self) -> str:
        return f"{quote_identifier(self.database)}.{quote_identifier(self.table)}"


class BindType(str, Enum):
    INTEGER = "i"
    FLOAT = "d"
    TEXT = "s"


def infer_bind_type(value: Any) -> BindType:
    """
    Integer, float, or text for everything else.

    bool is an int subclass but is bound as text; None is never inspected
    beyond the text fallback.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return BindType.INTEGER
    if isinstance(value, float):
        return BindType.FLOAT
    return BindType.TEXT


def bind_value(value: Any, bind_type: BindType) -> Any:
    """Coerce numeric values to plain Python numbers; leave the rest alone."""
    if value is None:
        return None
    if bind_type is BindType.INTEGER:
        return int(value)
    if bind_type is BindType.FLOAT:
        return float(value)
    return value


@dataclass(frozen=True)
class Statement:
    sql: str
    params: tuple = ()
    types: tuple[BindType, ...] = ()
    # Column holding a generated key in the statement's single result row
    returning: Optional[str] = field(default=None, compare=False)

    @property
    def type_string(self) -> str:
        return "".join(t.value for t in self.types)


def _bind(values: Iterable[Any]) -> tuple[tuple, tuple[BindType, ...]]:
    params, types = [], []
    for value in values:
        bind_type = infer_bind_type(value)
        types.append(bind_type)
        params.append(bind_value(value, bind_type))
    return tuple(params), tuple(types)


def writable_columns(
    data: Mapping[str, Any], columns: Iterable[str], pk: str, ignore_key: bool
) -> dict[str, Any]:
    """
    Keep the entries of ``data`` that are table columns, in ``data`` order.

    Unknown keys are dropped silently; the primary key is dropped as well
    when ``ignore_key`` is set.
    """
    allowed = set(columns)
    known = {name: value for name, value in data.items() if name in allowed}
    if ignore_key:
        known.pop(pk, None)
    return known


def build_insert(
    descriptor: TableDescriptor,
    data: Mapping[str, Any],
    columns: Iterable[str],
    ignore_key: bool = True,
) -> Statement:
    columns = list(columns)
    values = writable_columns(data, columns, descriptor.pk, ignore_key)
    params, types = _bind(values.values())

    if values:
        names = ", ".join(quote_identifier(name) for name in values)
        markers = ", ".join("%s" for _ in values)
        sql = f"INSERT INTO {descriptor.qualified_name} ({names}) VALUES ({markers})"
    else:
        sql = f"INSERT INTO {descriptor.qualified_name} DEFAULT VALUES"

    returning = None
    if descriptor.pk in columns:
        returning = descriptor.pk
        sql += f" RETURNING {quote_identifier(descriptor.pk)}"

    return Statement(sql, params, types, returning=returning)


def build_update(
    descriptor: TableDescriptor,
    data: Mapping[str, Any],
    columns: Iterable[str],
    pk_value: Any,
    ignore_key: bool = True,
) -> Optional[Statement]:
    """
    Returns:
        The UPDATE statement, or None when no column is left to set
    """
    values = writable_columns(data, columns, descriptor.pk, ignore_key)
    if not values:
        return None

    params, types = _bind([*values.values(), pk_value])
    assignments = ", ".join(f"{quote_identifier(name)} = %s" for name in values)
    sql = (
        f"UPDATE {descriptor.qualified_name} SET {assignments} "
        f"WHERE {quote_identifier(descriptor.pk)} = %s"
    )
    return Statement(sql, params, types)


def build_delete(descriptor: TableDescriptor, pk_value: Any) -> Statement:
    params, types = _bind([pk_value])
    sql = f"DELETE FROM {descriptor.qualified_name} WHERE {quote_identifier(descriptor.pk)} = %s"
    return Statement(sql, params, types)


def build_select_by_pk(descriptor: TableDescriptor, pk_value: Any) -> Statement:
    params, types = _bind([pk_value])
    sql = f"SELECT * FROM {descriptor.qualified_name} WHERE {quote_identifier(descriptor.pk)} = %s"
    return Statement(sql, params, types)


def comparison_operator(value: Any) -> str:
    """LIKE when the value carries a ``%`` wildcard, = otherwise."""
    if isinstance(value, str) and "%" in value:
        return "LIKE"
    return "="


def build_select_by_field(
    descriptor: TableDescriptor, field_name: str, value: Any, limit_one: bool = False
) -> Statement:
    if not isinstance(field_name, str) or not field_name:
        raise ValidationError("The field name must be a non-empty string.")

    operator = comparison_operator(value)
    sql = (
        f"SELECT * FROM {descriptor.qualified_name} "
        f"WHERE {quote_identifier(field_name)} {operator} %s"
    )
    if limit_one:
        sql += " LIMIT 1"
    # Bound as given so booleans and dates reach the driver unchanged
    return Statement(sql, (value,), (infer_bind_type(value),))


def substitute_placeholders(sql: str, descriptor: TableDescriptor) -> str:
    """Replace ``:database``, ``:table`` and ``:pk`` with quoted identifiers."""
    return (
        sql.replace(":database", quote_identifier(descriptor.database))
        .replace(":table", quote_identifier(descriptor.table))
        .replace(":pk", quote_identifier(descriptor.pk))
    )
