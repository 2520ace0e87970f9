"""
Core data models for the raw table loader.

This module defines the record and table layout structures shared by the SQL
operations, the batch stager and the loaders.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .constants import V1_RAW_TABLE_COLUMNS, V2_RAW_TABLE_COLUMNS


class TableSchemaVersion(Enum):
    """Destination protocol generation a raw table is laid out for."""
    V1 = "v1"
    V2 = "v2"

    @classmethod
    def from_flag(cls, use_destinations_v2: bool) -> 'TableSchemaVersion':
        """Resolve the version from the boolean destinations-v2 flag."""
        return cls.V2 if use_destinations_v2 else cls.V1

    @property
    def columns(self) -> Tuple[str, ...]:
        """Raw table column names in table order."""
        if self is TableSchemaVersion.V2:
            return V2_RAW_TABLE_COLUMNS
        return V1_RAW_TABLE_COLUMNS


@dataclass
class StreamRecord:
    """
    A record message in flight towards a destination table.

    Attributes:
        serialized: JSON text of the record payload. Rewritten in place when a
            data adapter is applied.
        emitted_at: Emission time in milliseconds since the Unix epoch (negative before 1970)
        meta: Optional per-record metadata (e.g. a list of field changes)
    """
    serialized: str
    emitted_at: int
    meta: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        """Validate record fields."""
        if self.serialized is None:
            raise ValueError("serialized cannot be None")
        if isinstance(self.emitted_at, bool) or not isinstance(self.emitted_at, int):
            raise ValueError(f"emitted_at must be an integer epoch millisecond value, got {self.emitted_at!r}")


@dataclass
class StagedRecord:
    """
    One row of a staged batch, ready for bulk loading.

    Attributes:
        row_id: Generated unique row identifier (primary key of the raw table)
        data: Serialized JSON payload
        extracted_at: ISO-8601 UTC timestamp derived from the emission time
        meta: Serialized JSON metadata (V2 only)
        loaded_at: Always None at staging time; set by downstream typing and deduping
    """
    row_id: str
    data: str
    extracted_at: str
    meta: Optional[str] = None
    loaded_at: Optional[str] = field(default=None)

    def as_row(self, version: TableSchemaVersion) -> tuple:
        """Return the values in the column order of the raw table for ``version``."""
        if version is TableSchemaVersion.V2:
            return (self.row_id, self.data, self.extracted_at, self.loaded_at, self.meta)
        return (self.row_id, self.data, self.extracted_at)
