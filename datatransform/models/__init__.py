"""Models module for job and specification definitions."""

from datatransform.models.job import (
    InputConfig,
    MetadataConfig,
    OutputConfig,
    TransformJob,
)
from datatransform.models.loader import load_job
from datatransform.models.runtime_config import RuntimeConfig
from datatransform.models.transform_spec import (
    BinMethod,
    ImputeMethod,
    NameSpec,
    ScaleMethod,
    TransformMethod,
    TransformSpec,
)

__all__ = [
    "TransformJob",
    "InputConfig",
    "MetadataConfig",
    "OutputConfig",
    "RuntimeConfig",
    "NameSpec",
    "TransformSpec",
    "TransformMethod",
    "ImputeMethod",
    "BinMethod",
    "ScaleMethod",
    "load_job",
]
