"""Delimited-text input reading and row partitioning."""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from datatransform.core.exceptions import MalformedRowError
from datatransform.core.storage import Storage
from datatransform.models.job import InputConfig

logger = logging.getLogger(__name__)

Row = list[str]


@dataclass(frozen=True)
class Partition:
    """A contiguous slice of input rows processed by one task.

    ``row_offset`` is the 0-based position of the first row in the whole
    input, so apply tasks can write into disjoint output row ranges.
    """

    index: int
    row_offset: int
    rows: list[Row]
    source: str

    @property
    def num_rows(self) -> int:
        return len(self.rows)


class InputReader:
    """Reads rows from a file or a directory of part files.

    Part files are read in alphabetical order; only the first one carries a
    header line. Lines are stripped and split literally on the delimiter;
    blank lines are skipped.
    """

    def __init__(self, config: InputConfig):
        self._config = config
        self._storage, self._path = Storage.for_url(
            config.path, config.storage_options, encoding=config.encoding
        )
        self.files = self._storage.list_part_files(self._path)

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def sample_file(self) -> str:
        return self.files[0]

    @property
    def delimiter(self) -> str:
        return self._config.delimiter

    def iter_rows(self, file_index: int, num_columns: int) -> Iterator[Row]:
        """Yield the data rows of one part file.

        Raises:
            MalformedRowError: If a row's token count differs from num_columns
        """
        path = self.files[file_index]
        skip_header = file_index == 0 and self._config.has_header

        for line_number, line in enumerate(self._storage.iter_lines(path), start=1):
            if skip_header and line_number == 1:
                continue
            if not line.strip():
                continue
            tokens = line.split(self.delimiter)
            if len(tokens) != num_columns:
                raise MalformedRowError(
                    f"Row has {len(tokens)} values but expected {num_columns}",
                    context={
                        "path": path,
                        "line": line_number,
                        "expected": num_columns,
                        "actual": len(tokens),
                    },
                )
            yield tokens

    def read_partitions(
        self, num_columns: int, batch_size: Optional[int] = None
    ) -> list[Partition]:
        """Split the input into ordered partitions.

        Args:
            num_columns: Expected token count per row
            batch_size: Maximum rows per partition. None puts the whole input
                in a single partition; otherwise every part file is chunked
                separately.

        Returns:
            Partitions in input order with cumulative row offsets
        """
        partitions: list[Partition] = []
        offset = 0

        if batch_size is None:
            rows = [
                row
                for file_index in range(len(self.files))
                for row in self.iter_rows(file_index, num_columns)
            ]
            return [Partition(index=0, row_offset=0, rows=rows, source=self._path)]

        for file_index, path in enumerate(self.files):
            chunk: list[Row] = []
            for row in self.iter_rows(file_index, num_columns):
                chunk.append(row)
                if len(chunk) >= batch_size:
                    partitions.append(Partition(len(partitions), offset, chunk, path))
                    offset += len(chunk)
                    chunk = []
            if chunk:
                partitions.append(Partition(len(partitions), offset, chunk, path))
                offset += len(chunk)

        logger.debug(
            f"Split {offset} rows from {len(self.files)} file(s) into "
            f"{len(partitions)} partition(s)"
        )
        return partitions
