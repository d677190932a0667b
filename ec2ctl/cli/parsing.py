"""CLI argument parsing and parameter conversion utilities."""

from __future__ import annotations

import re
from typing import Any

from ec2ctl.constants import OUTPUT_FORMATS
from ec2ctl.providers.aws.constants import INSTANCE_ID_PATTERN

_INSTANCE_ID_RE = re.compile(INSTANCE_ID_PATTERN)


def _split_values(value: str | list[Any] | tuple[Any, ...]) -> list[str]:
    if isinstance(value, (list, tuple)):
        parts: list[str] = []
        for item in value:
            parts.extend(_split_values(str(item)))
        return parts

    return [part.strip() for part in str(value).split(",") if part.strip()]


def parse_regions(regions: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Parse region parameter into a list of region codes.

    Parameters
    ----------
    regions : str | list[str] | tuple[str, ...] | None
        Comma-separated string, list, or tuple of region codes

    Returns
    -------
    list[str]
        Region codes in the order given, duplicates removed
    """
    if regions is None:
        return []

    return list(dict.fromkeys(_split_values(regions)))


def parse_tags(
    tags: str | list[str] | tuple[str, ...] | dict[str, Any] | None,
) -> dict[str, str]:
    """Parse tag filters given as ``Key:Value`` pairs.

    Parameters
    ----------
    tags : str | list[str] | tuple[str, ...] | dict[str, Any] | None
        Comma-separated ``Key:Value`` string, a list of them, or a mapping

    Returns
    -------
    dict[str, str]
        Tag key to required value

    Raises
    ------
    ValueError
        If a pair has no separator or an empty key
    """
    if tags is None:
        return {}

    if isinstance(tags, dict):
        return {str(key): str(value) for key, value in tags.items()}

    parsed: dict[str, str] = {}
    for pair in _split_values(tags):
        key, sep, value = pair.partition(":")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid tag filter: '{pair}'. Expected format Key:Value")
        parsed[key] = value.strip()

    return parsed


def parse_output(output: str | None) -> str | None:
    """Validate the output format.

    Raises
    ------
    ValueError
        If the format is not one of table or json
    """
    if output is None:
        return None

    normalized = str(output).strip().lower()
    if normalized not in OUTPUT_FORMATS:
        raise ValueError(
            f"Invalid output format: '{output}'. Valid formats: {', '.join(OUTPUT_FORMATS)}"
        )

    return normalized


def parse_instance_ids(instance_ids: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Parse and validate explicit instance ids.

    Parameters
    ----------
    instance_ids : str | list[str] | tuple[str, ...] | None
        Comma-separated string, list, or tuple of instance ids

    Returns
    -------
    list[str]
        Instance ids in the order given, duplicates removed

    Raises
    ------
    ValueError
        If any id does not have the EC2 instance id format
    """
    if instance_ids is None:
        return []

    ids = list(dict.fromkeys(_split_values(instance_ids)))
    for instance_id in ids:
        if not _INSTANCE_ID_RE.match(instance_id):
            raise ValueError(f"'{instance_id}' is not a valid instance id")

    return ids


def apply_cli_overrides(
    settings: dict[str, Any],
    regions: str | list[str] | tuple[str, ...] | None,
    tag: str | list[str] | tuple[str, ...] | None,
    output: str | None,
) -> None:
    """Apply CLI option overrides to merged settings.

    Parameters
    ----------
    settings : dict[str, Any]
        Settings dictionary to modify in-place
    regions : str | list[str] | tuple[str, ...] | None
        Regions to operate in
    tag : str | list[str] | tuple[str, ...] | None
        ``Key:Value`` tag filters; replace configured tags when given
    output : str | None
        Output format
    """
    if regions is not None:
        settings["regions"] = parse_regions(regions)

    if tag is not None:
        settings["tags"] = parse_tags(tag)

    if output is not None:
        settings["output"] = parse_output(output)


__all__ = [
    "parse_regions",
    "parse_tags",
    "parse_output",
    "parse_instance_ids",
    "apply_cli_overrides",
]
