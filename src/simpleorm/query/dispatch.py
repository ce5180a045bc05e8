"""
``retrieve_by`` convenience finders.

``Post.retrieveByIsPublic(True)`` and ``Post.retrieve_by_is_public(True)``
both mean ``Post.retrieve_by_field("is_public", True)``. The record
metaclass hands unknown class attributes to resolve(), which parses the
name once, installs a classmethod under that name and returns it. Later
calls find the installed finder directly.
"""

import re
from typing import Optional

from simpleorm.errors import DispatchError
from simpleorm.query.gateway import Cardinality

SNAKE_PREFIX = "retrieve_by_"
CAMEL_PREFIX = "retrieveBy"

_BOUNDARY = re.compile(r"\B([A-Z])")


def to_field_name(name: str) -> str:
    """
    Convert a camel-case name to a lowercase underscore field name.

    >>> to_field_name("IsPublic")
    'is_public'
    """
    return _BOUNDARY.sub(r"_\1", name).lower()


def parse_finder_name(name: str) -> Optional[str]:
    """Field a finder name refers to, or None if it is not a finder name."""
    if name.startswith(SNAKE_PREFIX):
        return name[len(SNAKE_PREFIX):] or None
    if name.startswith(CAMEL_PREFIX):
        rest = name[len(CAMEL_PREFIX):]
        return to_field_name(rest) if rest else None
    return None


def make_finder(name: str, field: str):
    def finder(cls, value, cardinality: Cardinality = Cardinality.MANY):
        return cls.retrieve_by_field(field, value, cardinality)

    finder.__name__ = name
    finder.__qualname__ = name
    finder.__doc__ = f"Retrieve records whose {field} matches ``value``."
    return classmethod(finder)


def resolve(record_type: type, name: str):
    field = None if name.startswith("_") else parse_finder_name(name)
    if field is None:
        raise DispatchError(f'There is no method named "{name}" in the class "{record_type.__name__}".')

    setattr(record_type, name, make_finder(name, field))
    return getattr(record_type, name)
