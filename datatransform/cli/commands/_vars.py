"""Shared parsing of ``--vars key=value`` options."""

import sys

import click


def parse_cli_vars(values: tuple) -> dict[str, str] | None:
    """Turn repeated ``key=value`` options into a dict, exiting on bad input."""
    cli_vars = {}
    for var in values:
        if "=" not in var:
            click.echo(f"Error: Invalid variable format: {var}. Use key=value", err=True)
            sys.exit(1)
        key, value = var.split("=", 1)
        cli_vars[key] = value
    return cli_vars or None
