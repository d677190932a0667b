"""CLI entry point for ec2ctl."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable
from typing import Any

import fire

from ec2ctl.constants import EXIT_CONFIG_ERROR, EXIT_ERROR
from ec2ctl.core.errors import Ec2CtlError, RegionDiscoveryFailed
from ec2ctl.core.interfaces import ComputeProvider
from ec2ctl.logging import StreamFormatter, StreamRoutingFilter
from ec2ctl.providers import ProviderAPIError, ProviderCredentialsError
from ec2ctl.providers.aws.constants import PERMISSION_ERROR_CODES
from ec2ctl.providers.aws.utils import get_aws_credentials_error_message


def get_ec2ctl_base_class() -> type:
    """Get Ec2Ctl base class on-demand to avoid circular imports.

    Returns
    -------
    type
        Ec2Ctl base class
    """
    from ec2ctl.__main__ import Ec2Ctl

    return Ec2Ctl


class Ec2CtlCLI:
    """CLI wrapper that turns command results into process exit codes.

    This is defined as a factory that creates a subclass of Ec2Ctl
    at runtime to avoid circular import issues.

    Parameters
    ----------
    compute_provider_factory : Callable[[str], ComputeProvider] | None
        Optional factory function for creating compute provider instances.
        If None, uses the default compute provider class.
    """

    _cached_class: type | None = None

    def __new__(
        cls, compute_provider_factory: Callable[[str], ComputeProvider] | None = None
    ) -> Any:
        if cls._cached_class is None:
            Ec2Ctl = get_ec2ctl_base_class()

            class Ec2CtlCLIImpl(Ec2Ctl):
                """CLI wrapper implementation for Ec2Ctl."""

                def _finish(self, exit_code: int) -> None:
                    if exit_code:
                        sys.exit(exit_code)

            cls._cached_class = Ec2CtlCLIImpl

        return cls._cached_class(compute_provider_factory=compute_provider_factory)


def handle_credentials_error(debug_mode: bool) -> None:
    """Handle provider credentials error.

    Raises
    ------
    ProviderCredentialsError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(get_aws_credentials_error_message(), file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_value_error(error: ValueError, debug_mode: bool) -> None:
    """Handle invalid configuration or arguments.

    Parameters
    ----------
    error : ValueError
        The value error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ValueError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Configuration error: {error}", file=sys.stderr)
    sys.exit(EXIT_CONFIG_ERROR)


def handle_api_error(error: ProviderAPIError, debug_mode: bool) -> None:
    """Handle provider API error with context-specific messages.

    Parameters
    ----------
    error : ProviderAPIError
        The API error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ProviderAPIError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    error_code = error.error_code

    if error_code in PERMISSION_ERROR_CODES:
        print("Insufficient IAM permissions\n", file=sys.stderr)
        print("Your cloud credentials don't have the required permissions.", file=sys.stderr)
        print("Contact your cloud administrator to grant:", file=sys.stderr)
        print("  - ec2:DescribeRegions, ec2:DescribeInstances", file=sys.stderr)
        print("  - ec2:DescribeInstanceStatus, ec2:DescribeSpotInstanceRequests", file=sys.stderr)
        print(
            "  - ec2:StartInstances, ec2:StopInstances, ec2:TerminateInstances",
            file=sys.stderr,
        )
        print("  - ec2:ModifyInstanceAttribute", file=sys.stderr)
    elif error_code in ["ExpiredToken", "RequestExpired", "ExpiredTokenException"]:
        print("Cloud credentials have expired\n", file=sys.stderr)
        print("Fix it:", file=sys.stderr)
        print("  aws sso login           # If using AWS SSO", file=sys.stderr)
        print("  aws configure           # Re-configure credentials", file=sys.stderr)
    else:
        print(f"Cloud API error: {error}", file=sys.stderr)

    sys.exit(EXIT_ERROR)


def handle_engine_error(error: Ec2CtlError, debug_mode: bool) -> None:
    """Handle an irrecoverable inventory or dispatch error.

    Raises
    ------
    Ec2CtlError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    if isinstance(error, RegionDiscoveryFailed):
        print(f"Unable to determine regions: {error}", file=sys.stderr)
    else:
        print(f"Error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def configure_logging(debug_mode: bool) -> None:
    """Route log records to stdout or stderr by their ``stream`` extra."""
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(StreamFormatter("%(message)s"))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(StreamFormatter("%(message)s"))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    logging.basicConfig(
        level=logging.DEBUG if debug_mode else logging.WARNING,
        handlers=[stdout_handler, stderr_handler],
    )

    for boto_module in ["botocore", "boto3", "urllib3"]:
        logging.getLogger(boto_module).setLevel(logging.WARNING)


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Notes
    -----
    Fire maps the Ec2Ctl methods to CLI commands and handles argument
    parsing, help text generation, and command routing. Setting
    ``EC2CTL_DEBUG=1`` enables debug logging and re-raises errors with
    their tracebacks.
    """
    debug_mode = os.environ.get("EC2CTL_DEBUG") == "1"
    configure_logging(debug_mode)

    try:
        fire.Fire(Ec2CtlCLI())
    except ProviderCredentialsError:
        handle_credentials_error(debug_mode)
    except ValueError as e:
        handle_value_error(e, debug_mode)
    except ProviderAPIError as e:
        handle_api_error(e, debug_mode)
    except Ec2CtlError as e:
        handle_engine_error(e, debug_mode)
