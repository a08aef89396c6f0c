"""Data Transform - Spec-driven feature transformation engine.

Fits imputation, recoding, binning, scaling and dummy-coding metadata over
delimited text in one or many partitions, publishes it atomically, and
applies it to produce transformed CSV or numeric matrix output.
"""

__version__ = "0.1.0"

# Public API
from datatransform.api import from_yaml, run_job, run_job_from_yaml

# Exceptions
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

# Job model
from datatransform.models.job import TransformJob
from datatransform.models.transform_spec import NameSpec, TransformSpec

__all__ = [
    # Version
    "__version__",
    # Public API
    "from_yaml",
    "run_job",
    "run_job_from_yaml",
    # Core classes
    "TransformJob",
    "NameSpec",
    "TransformSpec",
    "MetadataStore",
    "OutputLayout",
    "TransformResult",
    # Exceptions
    "DataTransformError",
    "JobError",
    "StorageError",
    "SpecError",
    "MetadataError",
    "DataError",
    "EngineError",
]
