"""Pytest configuration and fixtures for ec2ctl tests."""

import io
import os
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import yaml
from rich.console import Console

tests_root = Path(__file__).parent
if str(tests_root) not in sys.path:
    sys.path.insert(0, str(tests_root))

from fakes.fake_ec2_manager import (  # noqa: E402
    FakeEC2Manager,
    FakeProviderFactory,
    FakeRegionCatalog,
)


@pytest.fixture(autouse=True)
def cleanup_debug_env() -> Generator[None, None, None]:
    """Ensure EC2CTL_DEBUG is not set for unit tests.

    Yields
    ------
    None
        Control back to test after ensuring clean environment
    """
    original_debug = os.environ.pop("EC2CTL_DEBUG", None)

    yield

    if original_debug is not None:
        os.environ["EC2CTL_DEBUG"] = original_debug
    else:
        os.environ.pop("EC2CTL_DEBUG", None)


@pytest.fixture
def aws_credentials() -> Generator[None, None, None]:
    """Fixture to set AWS credentials for testing with proper cleanup.

    Sets mock AWS credentials in environment variables for the duration of the test,
    then restores the original environment state.

    Yields
    ------
    None
        Control back to test after setting credentials
    """
    old_access_key = os.environ.get("AWS_ACCESS_KEY_ID")
    old_secret_key = os.environ.get("AWS_SECRET_ACCESS_KEY")
    old_region = os.environ.get("AWS_DEFAULT_REGION")

    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield

    if old_access_key is not None:
        os.environ["AWS_ACCESS_KEY_ID"] = old_access_key
    else:
        os.environ.pop("AWS_ACCESS_KEY_ID", None)

    if old_secret_key is not None:
        os.environ["AWS_SECRET_ACCESS_KEY"] = old_secret_key
    else:
        os.environ.pop("AWS_SECRET_ACCESS_KEY", None)

    if old_region is not None:
        os.environ["AWS_DEFAULT_REGION"] = old_region
    else:
        os.environ.pop("AWS_DEFAULT_REGION", None)


@pytest.fixture
def config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary config file path and clean up environment.

    Parameters
    ----------
    tmp_path : Path
        Pytest temporary directory path

    Yields
    ------
    Path
        Path to temporary config file
    """
    config_path = tmp_path / ".ec2ctl.yaml"

    original_env = os.environ.get("EC2CTL_CONFIG")
    os.environ["EC2CTL_CONFIG"] = str(config_path)

    yield config_path

    if original_env is not None:
        os.environ["EC2CTL_CONFIG"] = original_env
    elif "EC2CTL_CONFIG" in os.environ:
        del os.environ["EC2CTL_CONFIG"]


@pytest.fixture
def write_config(config_file: Path) -> Callable[[dict[str, Any]], None]:
    """Helper fixture to write config data to file.

    Parameters
    ----------
    config_file : Path
        Path to config file from config_file fixture

    Returns
    -------
    callable
        Function that takes config_data dict and writes to file
    """

    def _write(config_data: dict[str, Any]) -> None:
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

    return _write


@pytest.fixture
def console_output() -> io.StringIO:
    """Buffer receiving everything written to the test console."""
    return io.StringIO()


@pytest.fixture
def console(console_output: io.StringIO) -> Console:
    """Rich console writing plain text into console_output."""
    return Console(file=console_output, width=200, color_system=None, force_terminal=False)


@pytest.fixture
def provider_factory() -> FakeProviderFactory:
    """Compute provider factory handing out one FakeEC2Manager per region."""
    return FakeProviderFactory()


@pytest.fixture
def fake_region(provider_factory: FakeProviderFactory) -> Callable[..., FakeEC2Manager]:
    """Register a fake region holding the given raw instances.

    Returns
    -------
    callable
        Function taking a region code and raw instance records
    """

    def _add(region: str, instances: list[dict[str, Any]] | None = None, **kwargs: Any):
        manager = FakeEC2Manager(region, instances=instances, **kwargs)
        provider_factory.managers[region] = manager
        return manager

    return _add


@pytest.fixture
def region_catalog() -> FakeRegionCatalog:
    """Region catalog that discovers us-east-1 and eu-west-1."""
    return FakeRegionCatalog(["us-east-1", "eu-west-1"])
