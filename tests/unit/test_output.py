import json

import pytest

from ec2ctl.core.models import AccountSummary, Instance, RegionSummary
from ec2ctl.output import COLUMNS, region_table, render, render_json


@pytest.fixture
def summary() -> AccountSummary:
    return AccountSummary(
        (
            RegionSummary(
                "eu-west-1",
                (
                    Instance(
                        id="i-00000001",
                        region="eu-west-1",
                        status="running",
                        instance_type="t3.micro",
                        name="web-1",
                        environment="prod",
                        availability_zone="eu-west-1a",
                        private_ip="10.0.0.1",
                    ),
                ),
            ),
        )
    )


def test_columns_are_static() -> None:
    headers = [column.header for column in COLUMNS]

    assert headers[:3] == ["Name", "ID", "Status"]
    assert "Region" in headers and "AZ" in headers


def test_table_has_one_row_per_instance(summary: AccountSummary) -> None:
    table = region_table(summary.regions[0])

    assert table.title == "eu-west-1"
    assert table.row_count == 1
    assert len(table.columns) == len(COLUMNS)


def test_render_table(summary: AccountSummary, console, console_output) -> None:
    render(summary, "table", console)

    output = console_output.getvalue()
    assert "eu-west-1" in output
    assert "i-00000001" in output
    assert "web-1" in output


def test_long_names_are_truncated(console, console_output) -> None:
    name = "x" * 60
    summary = AccountSummary(
        (
            RegionSummary(
                "us-east-1",
                (Instance(id="i-00000001", region="us-east-1", status="running", name=name),),
            ),
        )
    )

    render(summary, "table", console)

    assert name not in console_output.getvalue()
    assert "..." in console_output.getvalue()


def test_render_json(summary: AccountSummary, console, console_output) -> None:
    render(summary, "json", console)

    data = json.loads(console_output.getvalue())
    assert data[0]["region"] == "eu-west-1"
    assert data[0]["instances"][0]["id"] == "i-00000001"
    assert data[0]["instances"][0]["lifecycle"] == "on-demand"


def test_render_json_empty() -> None:
    assert json.loads(render_json(AccountSummary())) == []


def test_markup_in_names_is_not_interpreted(console, console_output) -> None:
    summary = AccountSummary(
        (
            RegionSummary(
                "us-east-1",
                (
                    Instance(
                        id="i-00000001", region="us-east-1", status="running", name="[bold]x[/bold]"
                    ),
                ),
            ),
        )
    )

    render(summary, "table", console)

    assert "[bold]x[/bold]" in console_output.getvalue()


def test_unknown_format(summary: AccountSummary, console) -> None:
    with pytest.raises(ValueError, match="invalid output type"):
        render(summary, "yaml", console)
