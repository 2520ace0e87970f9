"""
Utility functions for JSON payloads and record timestamps.
"""

import json
from datetime import datetime, timezone
from typing import Any


class JsonUtils:
    """Compact JSON serialization used for staged payloads and metadata."""

    @staticmethod
    def serialize(value: Any) -> str:
        """
        Serialize a value to compact JSON text.

        Non-ASCII characters are written as-is; the staged output is UTF-8.

        Args:
            value: JSON-compatible value

        Returns:
            JSON text without insignificant whitespace
        """
        return json.dumps(value, separators=(',', ':'), ensure_ascii=False)

    @staticmethod
    def deserialize(text: str) -> Any:
        """
        Deserialize JSON text.

        Raises:
            ValueError: If the text is not valid JSON
        """
        return json.loads(text)


class TimestampUtils:
    """Conversions between epoch milliseconds and timestamp text."""

    @staticmethod
    def from_epoch_millis(epoch_millis: int) -> datetime:
        """Convert milliseconds since the Unix epoch to an aware UTC datetime."""
        seconds, millis = divmod(int(epoch_millis), 1000)
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=millis * 1000)

    @staticmethod
    def format_epoch_millis(epoch_millis: int) -> str:
        """
        Format epoch milliseconds as an ISO-8601 UTC timestamp.

        Examples:
            1000 -> '1970-01-01T00:00:01Z'
            1500 -> '1970-01-01T00:00:01.500Z'
        """
        moment = TimestampUtils.from_epoch_millis(epoch_millis)
        timespec = 'milliseconds' if moment.microsecond else 'seconds'
        return moment.replace(tzinfo=None).isoformat(timespec=timespec) + 'Z'
