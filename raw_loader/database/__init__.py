"""
Database components: SQL operations, error classification and loaders.

The pyodbc-backed modules (connection, insert_loader) are imported explicitly
by callers that use them.
"""

from .error_classifier import ErrorClassifier, ErrorSignature, SqlStateErrorClassifier
from .sql_operations import SqlOperations

__all__ = [
    'ErrorClassifier',
    'ErrorSignature',
    'SqlOperations',
    'SqlStateErrorClassifier',
]
