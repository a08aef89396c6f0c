"""Pytest configuration and shared fixtures."""

import tempfile
from pathlib import Path

import pytest

from datatransform.core.columns import ColumnIndex
from datatransform.core.reader import Partition


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_csv(temp_dir):
    """Write a delimited file under temp_dir and return its path."""

    def _write(relpath: str, lines: list[str]) -> Path:
        path = temp_dir / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def scenario_lines():
    """Four-column input with a missing category and a missing number."""
    return [
        "id,color,size,weight",
        "1,red,10,1.0",
        "2,blue,20,NA",
        "3,NA,30,3.0",
    ]


@pytest.fixture
def scenario_columns():
    return ColumnIndex.from_header("id,color,size,weight", ",")


@pytest.fixture
def cli_vars():
    """Fixture providing CLI variables for testing."""
    return {
        "CLI_VAR_1": "cli_value_1",
        "CLI_VAR_2": "cli_value_2",
    }


@pytest.fixture
def make_partitions():
    """Split rows into consecutive partitions of the given sizes."""

    def _split(rows: list[list[str]], sizes: list[int]) -> list[Partition]:
        partitions = []
        offset = 0
        for index, size in enumerate(sizes):
            chunk = rows[offset : offset + size]
            partitions.append(Partition(index, offset, chunk, "test"))
            offset += size
        assert offset == len(rows)
        return partitions

    return _split
