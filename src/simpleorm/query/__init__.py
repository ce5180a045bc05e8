"""
Query

Statement compilation, execution and ``retrieve_by`` finders.
"""

from simpleorm.query.builder import BindType, Statement, TableDescriptor
from simpleorm.query.gateway import Cardinality, ExecutionResult

__all__ = ["BindType", "Cardinality", "ExecutionResult", "Statement", "TableDescriptor"]
