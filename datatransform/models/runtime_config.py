"""Runtime configuration model for transform jobs."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class RuntimeConfig(BaseModel):
    """Configuration for execution behavior."""

    mode: Literal["single", "distributed"] = Field(
        default="single",
        description="single: one in-memory partition; distributed: partitioned passes",
    )
    parallelism: int = Field(
        default=1,
        description="Number of partitions processed concurrently (distributed mode)",
        ge=1,
    )
    batch_size: int = Field(
        default=10000,
        description="Maximum rows per partition in distributed mode",
        gt=0,
    )

    @field_validator("parallelism")
    @classmethod
    def validate_parallelism(cls, v):
        """Validate parallelism is at least 1."""
        if v < 1:
            raise ValueError("parallelism must be at least 1")
        return v
