"""
Record

The Record base class and the pieces it is built from: attribute map,
dirty tracking, filters and load strategies.
"""

from simpleorm.record.base import Record
from simpleorm.record.loader import LoadStrategy

__all__ = ["LoadStrategy", "Record"]
