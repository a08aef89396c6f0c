"""Public Python API for datatransform package.

This module provides the main entry points for loading and executing jobs.
"""

from datatransform.core.engine import execute
from datatransform.core.result import TransformResult
from datatransform.models.job import TransformJob
from datatransform.models.loader import load_job


def from_yaml(path: str, cli_vars: dict[str, str] | None = None) -> TransformJob:
    """Load a job from a YAML file.

    Templates such as ``{{ env_var('DATA_DIR') }}`` are rendered and a
    relative ``spec_path`` is resolved against the job file's directory.

    Args:
        path: Path to job YAML file
        cli_vars: Values for ``{{ var('name') }}`` templates

    Returns:
        Fully resolved TransformJob instance

    Raises:
        JobError: If file not found, invalid YAML, or validation fails
        SpecError: If the referenced spec file is missing or invalid

    Example:
        >>> job = from_yaml("jobs/adult.yaml")
        >>> print(job.name)
        adult
    """
    return load_job(path, cli_vars=cli_vars)


def run_job(job: TransformJob) -> TransformResult:
    """Execute a job.

    With a spec, the input is fitted, the metadata published to
    ``metadata.path`` and the input transformed (fit+apply). With
    ``metadata.apply_from``, published metadata is loaded and only the apply
    pass runs (apply-only).

    Args:
        job: TransformJob instance to execute

    Returns:
        TransformResult with the output layout and written paths

    Raises:
        EngineError: If execution fails; ``phase`` names the failing step

    Example:
        >>> from datatransform import from_yaml, run_job
        >>> result = run_job(from_yaml("jobs/adult.yaml"))
        >>> result.layout.num_columns_transformed
        12
    """
    return execute(job)


def run_job_from_yaml(
    job_path: str, cli_vars: dict[str, str] | None = None
) -> TransformResult:
    """Load and execute a job from YAML file.

    Convenience function that combines `from_yaml()` and `run_job()`.

    Raises:
        JobError: If job loading fails
        EngineError: If execution fails
    """
    return run_job(from_yaml(job_path, cli_vars=cli_vars))
