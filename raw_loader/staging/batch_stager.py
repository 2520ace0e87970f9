"""
Batch Stager - Records to Bulk-Loadable Rows

Converts an ordered batch of stream records into staged rows (generated row id,
serialized payload, extraction timestamp and, for V2 tables, a null load
timestamp and serialized metadata). Rows are emitted in the exact column order
of the raw table so bulk loaders can bind them positionally.

The staged text form is CSV (comma separated, double-quote escaping, CRLF
record separator, empty field for NULL) encoded as UTF-8. Where the staged rows
end up (a string, an open stream or a temporary file) is up to the loader.
"""

import csv
import io
import logging
import uuid
from pathlib import Path
from typing import Iterable, Iterator, Optional, TextIO, Union

from ..exceptions import StagingError
from ..interfaces import DataAdapter
from ..models import StagedRecord, StreamRecord, TableSchemaVersion
from ..utils import JsonUtils, TimestampUtils


class BatchStager:
    """
    Stages record batches for one raw table version.

    The stager holds no per-batch state: rows are produced lazily from the
    input and nothing from a batch is kept once a call returns.
    """

    def __init__(self, schema_version: TableSchemaVersion, data_adapter: Optional[DataAdapter] = None):
        """
        Initialize the batch stager.

        Args:
            schema_version: Raw table layout the rows are produced for
            data_adapter: Optional adapter applied to every payload before serialization
        """
        self.logger = logging.getLogger(__name__)
        self.schema_version = schema_version
        self.data_adapter = data_adapter
        if data_adapter is None:
            self._serialize_payload = self._keep_payload
        else:
            self._serialize_payload = self._adapt_payload

    @property
    def columns(self):
        return self.schema_version.columns

    def stage_records(self, records: Iterable[StreamRecord]) -> Iterator[StagedRecord]:
        """
        Yield one StagedRecord per input record, in input order.

        Raises:
            StagingError: If a payload is not valid JSON and must be re-serialized
        """
        is_v2 = self.schema_version is TableSchemaVersion.V2
        for index, record in enumerate(records):
            yield StagedRecord(
                row_id=str(uuid.uuid4()),
                data=self._serialize_payload(record, index),
                extracted_at=TimestampUtils.format_epoch_millis(record.emitted_at),
                meta=JsonUtils.serialize(record.meta) if is_v2 else None,
            )

    def rows(self, records: Iterable[StreamRecord]) -> Iterator[tuple]:
        """Yield staged rows as tuples in raw table column order."""
        for staged in self.stage_records(records):
            yield staged.as_row(self.schema_version)

    def write(self, stream: TextIO, records: Iterable[StreamRecord]) -> int:
        """
        Write staged rows as CSV to an open text stream.

        Args:
            stream: Text stream; files should be opened with ``newline=''``
            records: Records to stage

        Returns:
            Number of rows written
        """
        writer = csv.writer(stream)
        row_count = 0
        for row in self.rows(records):
            writer.writerow(row)
            row_count += 1
        return row_count

    def stage(self, records: Iterable[StreamRecord]) -> str:
        """Return the staged batch as CSV text."""
        buffer = io.StringIO(newline='')
        row_count = self.write(buffer, records)
        self.logger.debug(f"Staged {row_count} records in memory ({self.schema_version.value} layout)")
        return buffer.getvalue()

    def write_batch_to_file(self, path: Union[str, Path], records: Iterable[StreamRecord]) -> int:
        """
        Write the staged batch to a UTF-8 CSV file, replacing any existing content.

        Returns:
            Number of rows written
        """
        with open(path, 'w', encoding='utf-8', newline='') as file:
            row_count = self.write(file, records)
        self.logger.debug(f"Staged {row_count} records to {path}")
        return row_count

    @staticmethod
    def _keep_payload(record: StreamRecord, index: int) -> str:
        return record.serialized

    def _adapt_payload(self, record: StreamRecord, index: int) -> str:
        try:
            data = JsonUtils.deserialize(record.serialized)
        except ValueError as e:
            raise StagingError(f"Record {index} payload is not valid JSON: {e}",
                               record_index=index, original_exception=e) from e
        self.data_adapter.adapt(data)
        return JsonUtils.serialize(data)
