"""Core module for datatransform package."""

from datatransform.core.columns import ColumnIndex, resolve_columns
from datatransform.core.exceptions import (
    DataError,
    DataTransformError,
    EngineError,
    JobError,
    MetadataError,
    SpecError,
    StorageError,
)
from datatransform.core.metadata import MetadataStore
from datatransform.core.result import OutputLayout, TransformResult
from datatransform.core.engine import execute

__all__ = [
    "ColumnIndex",
    "resolve_columns",
    "MetadataStore",
    "OutputLayout",
    "TransformResult",
    "DataTransformError",
    "JobError",
    "StorageError",
    "SpecError",
    "MetadataError",
    "DataError",
    "EngineError",
    "execute",
]
