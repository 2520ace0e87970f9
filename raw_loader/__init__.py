"""
Raw Table Loader

Shared table-lifecycle and batch-loading layer for connectors that write a
stream of records into raw tables of a relational warehouse: idempotent schema
and table creation for two raw table generations, staging of record batches
for bulk loading, atomic multi-statement execution, and classification of
database errors into user configuration problems and system failures.
"""

__version__ = "1.0.0"

from .models import (
    TableSchemaVersion,
    StreamRecord,
    StagedRecord
)

from .interfaces import (
    Database,
    DataAdapter,
    SqlOperationsInterface
)

from .exceptions import (
    RawLoaderError,
    ConfigurationError,
    DatabaseConnectionError,
    StagingError
)

__all__ = [
    # Core models
    "TableSchemaVersion",
    "StreamRecord",
    "StagedRecord",

    # Interfaces
    "Database",
    "DataAdapter",
    "SqlOperationsInterface",

    # Exceptions
    "RawLoaderError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "StagingError"
]
