"""Numeric matrix output stored as Parquet."""

import logging
import threading

import numpy as np
import pyarrow as pa
import pyarrow.parquet as pq

from datatransform.core.exceptions import MalformedValueError
from datatransform.sinks.base import OutputSink, Row, register_sink

logger = logging.getLogger(__name__)

# Below this fraction of non-zero cells the sparse layout is chosen.
SPARSITY_TURN_POINT = 0.4


class MatrixBlock:
    """Pre-sized dense matrix filled by concurrent partition tasks.

    ``set_rows`` needs no lock: apply tasks own disjoint row ranges.
    ``accumulate`` adds into cells that several writers may share and is
    serialized.
    """

    def __init__(self, num_rows: int, num_columns: int):
        self._values = np.zeros((num_rows, num_columns), dtype=np.float64)
        self._lock = threading.Lock()

    @property
    def shape(self) -> tuple[int, int]:
        return self._values.shape

    @property
    def values(self) -> np.ndarray:
        view = self._values.view()
        view.flags.writeable = False
        return view

    def _check_range(self, row_offset: int, values: np.ndarray) -> None:
        num_rows, num_columns = self._values.shape
        if values.ndim != 2 or values.shape[1] != num_columns:
            raise ValueError(
                f"Expected rows of {num_columns} columns, got shape {values.shape}"
            )
        if row_offset < 0 or row_offset + values.shape[0] > num_rows:
            raise ValueError(
                f"Rows {row_offset}..{row_offset + values.shape[0]} "
                f"out of range for {num_rows} rows"
            )

    def set_rows(self, row_offset: int, values: np.ndarray) -> None:
        self._check_range(row_offset, values)
        self._values[row_offset : row_offset + values.shape[0]] = values

    def accumulate(self, row_offset: int, values: np.ndarray) -> None:
        self._check_range(row_offset, values)
        with self._lock:
            self._values[row_offset : row_offset + values.shape[0]] += values

    @property
    def nnz(self) -> int:
        """Non-zero cell count. Missing values (NaN) count as non-zero."""
        return int(np.count_nonzero(self._values))

    @property
    def sparsity(self) -> float:
        """Fraction of non-zero cells."""
        size = self._values.size
        return self.nnz / size if size else 0.0

    def prefers_sparse(self) -> bool:
        return self.sparsity < SPARSITY_TURN_POINT

    def to_dense_table(self) -> pa.Table:
        """One float64 column ``C<j>`` per matrix column."""
        return pa.table(
            {
                f"C{j + 1}": pa.array(self._values[:, j], type=pa.float64())
                for j in range(self._values.shape[1])
            }
        )

    def to_sparse_table(self) -> pa.Table:
        """1-based ``(row, col, value)`` triples of the non-zero cells."""
        rows, cols = np.nonzero(self._values)
        return pa.table(
            {
                "row": pa.array(rows + 1, type=pa.int64()),
                "col": pa.array(cols + 1, type=pa.int64()),
                "value": pa.array(self._values[rows, cols], type=pa.float64()),
            }
        )


@register_sink("matrix")
class MatrixSink(OutputSink):
    """Fills a MatrixBlock and stores it as a Parquet file.

    Missing-value tokens become NaN. Any other non-numeric value left after
    transformation is an error, since the output is numeric.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.block = MatrixBlock(
            self.layout.num_rows, self.layout.num_columns_transformed
        )
        self._missing = frozenset(self.input_config.na_strings) | {""}

    def write_rows(self, row_offset: int, rows: list[Row]) -> None:
        if rows:
            self.block.set_rows(row_offset, self._to_array(row_offset, rows))

    def _to_array(self, row_offset: int, rows: list[Row]) -> np.ndarray:
        values = np.empty((len(rows), self.layout.num_columns_transformed))
        for i, row in enumerate(rows):
            for j, token in enumerate(row):
                if token in self._missing:
                    values[i, j] = np.nan
                    continue
                try:
                    values[i, j] = float(token)
                except ValueError:
                    raise MalformedValueError(
                        f"Non-numeric value '{token}' cannot be written to a matrix",
                        context={
                            "column_name": self.header[j],
                            "output_column": j + 1,
                            "row": row_offset + i + 1,
                            "value": token,
                        },
                    ) from None
        return values

    def _use_sparse(self) -> bool:
        if self.config.layout == "auto":
            return self.block.prefers_sparse()
        return self.config.layout == "sparse"

    def close(self) -> str:
        sparse = self._use_sparse()
        table = self.block.to_sparse_table() if sparse else self.block.to_dense_table()

        temp_path = self._temp_path()
        with self._storage.open_binary(temp_path) as f:
            pq.write_table(table, f)
        self._publish_file(temp_path)

        layout = "sparse" if sparse else "dense"
        self._write_mtd(
            {"format": "parquet", "layout": layout, "nnz": self.block.nnz}
        )
        logger.info(
            f"Wrote {self.layout.num_rows}x{self.layout.num_columns_transformed} "
            f"{layout} matrix to {self.path}"
        )
        return self.path
