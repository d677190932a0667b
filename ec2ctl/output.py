"""Table and JSON rendering of inventory snapshots."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import NamedTuple

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ec2ctl.constants import InstanceState
from ec2ctl.core.models import AccountSummary, Instance, RegionSummary
from ec2ctl.utils import truncate_name


class Column(NamedTuple):
    header: str
    accessor: Callable[[Instance], object]
    style: str | None = None


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


COLUMNS: tuple[Column, ...] = (
    Column("Name", lambda i: truncate_name(i.name or ""), "bold"),
    Column("ID", lambda i: i.id),
    Column("Status", lambda i: i.status),
    Column("Type", lambda i: i.instance_type),
    Column("Lifecycle", lambda i: i.lifecycle),
    Column("Environment", lambda i: i.environment),
    Column("IP", lambda i: i.private_ip),
    Column("Hibernation", lambda i: i.hibernation_configured),
    Column("Spot Type", lambda i: i.spot_request_type),
    Column("Region", lambda i: i.region),
    Column("AZ", lambda i: i.availability_zone),
)
"""Columns of the instance table, in display order."""

STATUS_STYLES = {
    InstanceState.RUNNING.value: "green",
    InstanceState.STOPPED.value: "red",
    InstanceState.HIBERNATED.value: "red",
    InstanceState.PENDING.value: "yellow",
    InstanceState.STOPPING.value: "yellow",
    InstanceState.SHUTTING_DOWN.value: "yellow",
    InstanceState.TERMINATED.value: "bright_black",
}


def region_table(summary: RegionSummary) -> Table:
    """Build a rich table for one region's instances."""
    table = Table(title=summary.region, title_justify="left", header_style="bold")

    for column in COLUMNS:
        table.add_column(column.header, style=column.style)

    for instance in summary.instances:
        cells = []
        for column in COLUMNS:
            style = STATUS_STYLES.get(instance.status, "") if column.header == "Status" else ""
            cells.append(Text(_text(column.accessor(instance)), style=style))
        table.add_row(*cells)

    return table


def render_table(summary: AccountSummary, console: Console) -> None:
    for region in summary.regions:
        console.print(region_table(region))
        console.print()


def render_json(summary: AccountSummary) -> str:
    return json.dumps(summary.to_list(), indent=2)


def render(summary: AccountSummary, output: str, console: Console) -> None:
    """Render a snapshot in the requested format.

    Parameters
    ----------
    summary : AccountSummary
        Snapshot to render
    output : str
        "table" or "json"
    console : Console
        Console receiving the output

    Raises
    ------
    ValueError
        If the output format is unknown
    """
    if output == "json":
        console.print(render_json(summary), markup=False, highlight=False, soft_wrap=True)
    elif output == "table":
        render_table(summary, console)
    else:
        raise ValueError(f"invalid output type: {output!r}")
