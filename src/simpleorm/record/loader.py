"""
Record initialisation strategies.

A record is built with exactly one LoadStrategy, chosen when it is
constructed and never changed afterwards.
"""

from collections.abc import Mapping
from enum import Enum
from numbers import Integral

from simpleorm.errors import ValidationError


class LoadStrategy(Enum):
    BY_PRIMARY_KEY = 1
    BY_ATTRIBUTE_MAP = 2
    NEW_FROM_ATTRIBUTES = 3
    EMPTY = 4


def validate_pk(pk) -> int:
    """Accept an integer or a string of decimal digits."""
    if isinstance(pk, Integral) and not isinstance(pk, bool):
        return int(pk)
    if isinstance(pk, str) and pk.strip().isdecimal():
        return int(pk)
    raise ValidationError(f"The PK must be an integer, got {pk!r}.")


def validate_mapping(data) -> Mapping:
    if not isinstance(data, Mapping):
        raise ValidationError(f"The data given must be a mapping, got {type(data).__name__}.")
    return data


def load_by_primary_key(record) -> None:
    record._attributes[record.descriptor().pk] = validate_pk(record.load_data)
    record._reload()


def load_by_attribute_map(record) -> None:
    record._hydrate(validate_mapping(record.load_data))


def load_new_from_attributes(record) -> None:
    load_by_attribute_map(record)
    record._insert()


def load_empty(record) -> None:
    if record.load_data is not None:
        raise ValidationError("An empty record takes no data.")
    record._hydrate({column: None for column in record.columns()}, run_filters=False)
    record._new = True


LOADERS = {
    LoadStrategy.BY_PRIMARY_KEY: load_by_primary_key,
    LoadStrategy.BY_ATTRIBUTE_MAP: load_by_attribute_map,
    LoadStrategy.NEW_FROM_ATTRIBUTES: load_new_from_attributes,
    LoadStrategy.EMPTY: load_empty,
}


def load(record) -> None:
    LOADERS[record.load_strategy](record)
