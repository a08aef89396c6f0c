"""Delimited-text output."""

import logging
import threading
from typing import Iterator

from datatransform.sinks.base import OutputSink, Row, register_sink

logger = logging.getLogger(__name__)


@register_sink("csv")
class CSVSink(OutputSink):
    """Writes transformed rows as delimited text, in input row order.

    Uses the input delimiter. The transformed header line is written only
    when the input had a header. The file is written under a temporary name
    and renamed into place on close.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._chunks: dict[int, list[Row]] = {}
        self._lock = threading.Lock()

    def write_rows(self, row_offset: int, rows: list[Row]) -> None:
        with self._lock:
            self._chunks[row_offset] = rows

    def _lines(self) -> Iterator[str]:
        delimiter = self.input_config.delimiter
        if self.input_config.has_header:
            yield delimiter.join(self.header)
        for offset in sorted(self._chunks):
            for row in self._chunks[offset]:
                yield delimiter.join(row)

    def close(self) -> str:
        temp_path = self._temp_path()
        self._storage.write_lines(temp_path, self._lines())
        self._publish_file(temp_path)
        self._write_mtd(
            {
                "format": "csv",
                "header": self.input_config.has_header,
                "sep": self.input_config.delimiter,
            }
        )
        logger.info(f"Wrote {self.layout.num_rows} row(s) to {self.path}")
        return self.path
