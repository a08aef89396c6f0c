"""Template rendering for job values with Jinja2-style syntax."""

import os
import re
from typing import Any, Dict

from datatransform.core.exceptions import JobError

_TEMPLATE_PATTERN = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")
_CALL_PATTERN = re.compile(r"(\w+)\(['\"]([^'\"]+)['\"]\)")


def render_templates(
    job_dict: Dict[str, Any], cli_vars: Dict[str, str] | None = None
) -> Dict[str, Any]:
    """
    Render Jinja2-style templates in a job dictionary.

    Supports:
    - {{ env_var('VAR_NAME') }} - environment variable lookup
    - {{ var('VAR_NAME') }} - CLI variable lookup
    - {{ job.name }} - job metadata

    Args:
        job_dict: Job dictionary (may contain template expressions)
        cli_vars: Variables passed via CLI (e.g., --vars key=value)

    Returns:
        Job dictionary with templates rendered
    """
    context = {
        "job": {"name": job_dict.get("name", "")},
        "env_var": _get_env_var,
        "var": lambda key: _get_cli_var(key, cli_vars or {}),
    }
    return _render_value(job_dict, context)


def _get_env_var(key: str) -> str:
    value = os.environ.get(key)
    if value is None:
        raise JobError(
            f"Environment variable '{key}' not found",
            context={"key": key},
        )
    return value


def _get_cli_var(key: str, cli_vars: Dict[str, str]) -> str:
    if key not in cli_vars:
        raise JobError(
            f"CLI variable '{key}' not provided",
            context={"key": key, "available": sorted(cli_vars)},
        )
    return cli_vars[key]


def _render_value(value: Any, context: Dict[str, Any]) -> Any:
    if isinstance(value, dict):
        return {key: _render_value(item, context) for key, item in value.items()}
    if isinstance(value, list):
        return [_render_value(item, context) for item in value]
    if isinstance(value, str):
        return _TEMPLATE_PATTERN.sub(lambda m: _evaluate(m.group(1), context), value)
    return value


def _evaluate(expr: str, context: Dict[str, Any]) -> str:
    call = _CALL_PATTERN.fullmatch(expr)
    if call:
        func = context.get(call.group(1))
        if not callable(func):
            raise JobError(
                f"Unknown function: {call.group(1)}",
                context={"expression": expr},
            )
        return str(func(call.group(2)))

    result: Any = context
    try:
        for part in expr.split("."):
            result = result[part]
    except (KeyError, TypeError) as e:
        raise JobError(
            f"Template rendering failed: {expr}",
            context={"expression": expr, "error": str(e)},
        ) from e
    return str(result)
