"""Job model combining all configuration components."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from datatransform.models.runtime_config import RuntimeConfig
from datatransform.models.transform_spec import NameSpec


class InputConfig(BaseModel):
    """Delimited-text input: one file or a directory of part files."""

    path: str = Field(description="Input file or directory (local path or fsspec URL)")
    delimiter: str = Field(default=",", description="Field delimiter")
    has_header: bool = Field(
        default=True, description="Whether the first line of the first part file is a header"
    )
    na_strings: list[str] = Field(
        default_factory=lambda: ["NA"], description="Tokens treated as missing values"
    )
    encoding: str = Field(default="utf-8", description="Text encoding")
    storage_options: dict[str, Any] = Field(
        default_factory=dict, description="fsspec storage options"
    )

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v):
        """Validate the delimiter is non-empty."""
        if not v:
            raise ValueError("delimiter must not be empty")
        return v


class MetadataConfig(BaseModel):
    """Where transformation metadata is published to or loaded from."""

    path: Optional[str] = Field(
        default=None, description="Metadata directory published by this job"
    )
    apply_from: Optional[str] = Field(
        default=None, description="Existing metadata directory for apply-only runs"
    )


class OutputConfig(BaseModel):
    """One output sink."""

    type: Literal["csv", "matrix"] = Field(description="csv or matrix")
    path: str = Field(description="Output file path (local path or fsspec URL)")
    layout: Literal["auto", "dense", "sparse"] = Field(
        default="auto", description="Matrix storage layout (matrix outputs only)"
    )


class TransformJob(BaseModel):
    """Complete job definition for one fit+apply or apply-only run."""

    model_config = ConfigDict(protected_namespaces=())

    name: str = Field(description="Job name (required)")
    input: InputConfig = Field(description="Input configuration")
    spec: Optional[NameSpec] = Field(
        default=None, description="Inline name-keyed transformation specification"
    )
    spec_path: Optional[str] = Field(
        default=None, description="Path to a JSON or YAML name-keyed specification"
    )
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    outputs: list[OutputConfig] = Field(description="Output sinks", min_length=1)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="after")
    def validate_mode(self) -> "TransformJob":
        """Exactly one of a spec or prior metadata selects the operating mode."""
        if self.spec is not None and self.spec_path is not None:
            raise ValueError("give either 'spec' or 'spec_path', not both")

        has_spec = self.spec is not None or self.spec_path is not None
        if self.metadata.apply_from is not None:
            if has_spec:
                raise ValueError(
                    "apply-only jobs (metadata.apply_from) take no transformation spec"
                )
        else:
            if not has_spec:
                raise ValueError(
                    "a transformation spec is required unless metadata.apply_from is set"
                )
            if self.metadata.path is None:
                raise ValueError("metadata.path is required to publish fitted metadata")
        return self

    @property
    def is_apply_only(self) -> bool:
        return self.metadata.apply_from is not None

    @classmethod
    def from_dict(cls, data: dict) -> "TransformJob":
        """Create TransformJob from dictionary (after template rendering)."""
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str, cli_vars: dict[str, str] | None = None) -> "TransformJob":
        """Load job from YAML file.

        Args:
            path: Path to job YAML file
            cli_vars: Variables passed via CLI (e.g., --vars key=value)

        Returns:
            Fully resolved TransformJob instance
        """
        from datatransform.models.loader import load_job

        return load_job(path, cli_vars)
