"""AWS-specific constants for EC2 inventory and lifecycle operations."""

DRY_RUN_AUTHORIZED_CODE = "DryRunOperation"
"""Error code returned by a dry-run request that would have succeeded.

EC2 reports a successful permission check as an error response carrying this
code; it is the only signal that allows the committing call to be issued.
"""

HIBERNATE_REASON_CODE = "Client.UserInitiatedHibernate"
"""State reason code of an instance stopped through hibernation."""

REGION_OPT_IN_STATUSES = ["opt-in-not-required", "opted-in"]
"""Region opt-in statuses usable without further account action.

Regions reporting "not-opted-in" must be enabled on the account first and are
excluded from discovery.
"""

NAME_TAG = "Name"
"""Tag holding the display name of an instance."""

ENVIRONMENT_TAG = "Environment"
"""Tag holding the environment label of an instance."""

INSTANCE_ID_PATTERN = r"^i-(?:[0-9a-f]{8}|[0-9a-f]{17})$"
"""EC2 instance identifier format.

Older identifiers carry 8 hexadecimal characters after the prefix, current
ones carry 17.
"""

PERMISSION_ERROR_CODES = frozenset({"UnauthorizedOperation", "AccessDenied", "AuthFailure"})
"""Error codes meaning the caller's IAM policy does not allow the request."""
