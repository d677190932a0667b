"""CLI argument parsing and handling."""

from __future__ import annotations

from ec2ctl.cli.parsing import (
    apply_cli_overrides,
    parse_instance_ids,
    parse_output,
    parse_regions,
    parse_tags,
)

__all__ = [
    "apply_cli_overrides",
    "parse_regions",
    "parse_tags",
    "parse_output",
    "parse_instance_ids",
]
