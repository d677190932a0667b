"""AWS-specific utility functions for ec2ctl."""

from __future__ import annotations

from ec2ctl.providers.aws.constants import DRY_RUN_AUTHORIZED_CODE


def get_aws_credentials_error_message() -> str:
    """Get standard AWS credentials error message.

    Returns
    -------
    str
        Formatted AWS credentials error message
    """
    return (
        "Cloud credentials not found\n\n"
        "Configure your credentials:\n"
        "  aws configure\n\n"
        "Or set environment variables:\n"
        "  export AWS_ACCESS_KEY_ID=...\n"
        "  export AWS_SECRET_ACCESS_KEY=..."
    )


def is_dry_run_authorized(error_code: str | None) -> bool:
    """Whether an error code is the signal of a successful dry run."""
    return error_code == DRY_RUN_AUTHORIZED_CODE
