"""Job loader with YAML parsing, template rendering and spec file resolution."""

import os
from pathlib import Path
from typing import Dict

import yaml

from datatransform.core.exceptions import JobError, SpecError
from datatransform.models.job import TransformJob
from datatransform.models.templates import render_templates
from datatransform.models.transform_spec import NameSpec


def load_job(path: str, cli_vars: Dict[str, str] | None = None) -> TransformJob:
    """
    Load a job from a YAML file.

    Relative ``spec_path`` values are resolved against the job file's
    directory, and the referenced spec is loaded into ``job.spec``.

    Args:
        path: Path to job YAML file
        cli_vars: Variables passed via CLI (e.g., --vars key=value)

    Returns:
        Fully resolved TransformJob instance

    Raises:
        JobError: If the file is missing, not valid YAML, or fails validation
        SpecError: If a referenced spec file is unreadable or invalid
    """
    job_path = Path(path)
    if not job_path.exists():
        raise JobError(f"Job file not found: {path}")

    try:
        with open(job_path, "r", encoding="utf-8") as f:
            job_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise JobError(
            f"Invalid YAML in job file: {e}", context={"path": str(path)}
        ) from e

    if not isinstance(job_dict, dict):
        raise JobError(
            "Job file must contain a YAML dictionary", context={"path": str(path)}
        )

    job_dict = render_templates(job_dict, cli_vars)

    try:
        job = TransformJob.from_dict(job_dict)
    except Exception as e:
        raise JobError(
            f"Job validation failed: {e}", context={"path": str(path)}
        ) from e

    if job.spec_path is not None:
        spec_file = _resolve_relative(job.spec_path, job_path.parent)
        job = job.model_copy(update={"spec": NameSpec.from_file(spec_file)})

    return job


def _resolve_relative(path: str, base_dir: Path) -> Path:
    resolved = Path(path) if os.path.isabs(path) else (base_dir / path).resolve()
    if not resolved.exists():
        raise SpecError(
            f"Specification file not found: {path}",
            context={"base_dir": str(base_dir), "spec_path": path},
        )
    return resolved
