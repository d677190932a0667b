"""Global constants for ec2ctl.

This module contains application-wide constants that are used across multiple
components: exit codes, defaults, instance states and the closed set of
actions the dispatcher understands.
"""

from __future__ import annotations

from enum import Enum

DEFAULT_REGION = "us-east-1"
"""Region used for account-level calls such as region discovery.

Used when no default region is specified in configuration or environment.
"""

DEFAULT_CONFIG_FILENAME = ".ec2ctl.yaml"
"""Configuration file name looked up in the user's home directory."""

DEFAULT_OUTPUT = "table"
"""Default rendering for inventory snapshots."""

OUTPUT_FORMATS = ("table", "json")
"""Supported output formats for the status view."""

DEFAULT_NAME_COLUMN_WIDTH = 32
"""Default width in characters for the instance name column.

Longer names are truncated with an ellipsis so tables stay readable on
standard terminals.
"""

EXIT_SUCCESS = 0
"""Exit code indicating successful program completion.

Partial per-region or per-instance failures still exit with this code; only
irrecoverable errors change it.
"""

EXIT_ERROR = 1
"""Exit code indicating an irrecoverable error.

Returned when region discovery fails, credentials are missing or the provider
rejects an account-level call.
"""

EXIT_CONFIG_ERROR = 2
"""Exit code indicating a configuration or argument error."""


class InstanceState(str, Enum):
    """Instance state values."""

    PENDING = "pending"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting-down"
    STOPPING = "stopping"
    STOPPED = "stopped"
    TERMINATED = "terminated"
    HIBERNATED = "hibernated"


class Lifecycle(str, Enum):
    """Instance billing and allocation model."""

    ON_DEMAND = "on-demand"
    SPOT = "spot"


class Action(str, Enum):
    """Commands the inventory and dispatch engine can run."""

    START = "start"
    STOP = "stop"
    HIBERNATE = "hibernate"
    TERMINATE = "terminate"
    MODIFY_TYPE = "modify-type"
    STATUS = "status"

    @property
    def is_mutating(self) -> bool:
        """Whether the action changes instances and needs confirmation."""
        return self is not Action.STATUS

    @classmethod
    def parse(cls, value: "Action | str | None") -> "Action":
        """Convert an action identifier into an Action.

        Parameters
        ----------
        value : Action | str | None
            Action identifier; None means status

        Returns
        -------
        Action
            Parsed action

        Raises
        ------
        InvalidAction
            If the identifier names no known action
        """
        from ec2ctl.core.errors import InvalidAction

        if value is None or value == "":
            return cls.STATUS

        if isinstance(value, cls):
            return value

        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidAction(value) from None


STATUS_ELIGIBLE_STATES = frozenset(
    (
        InstanceState.PENDING.value,
        InstanceState.RUNNING.value,
        InstanceState.SHUTTING_DOWN.value,
        InstanceState.STOPPING.value,
        InstanceState.STOPPED.value,
    )
)
"""Raw provider states visible to status, terminate and modify-type.

Everything except terminated instances.
"""

ACTION_ELIGIBLE_STATES = {
    Action.START: frozenset((InstanceState.STOPPED.value,)),
    Action.STOP: frozenset((InstanceState.RUNNING.value,)),
    Action.HIBERNATE: frozenset((InstanceState.RUNNING.value,)),
    Action.TERMINATE: STATUS_ELIGIBLE_STATES,
    Action.MODIFY_TYPE: STATUS_ELIGIBLE_STATES,
    Action.STATUS: STATUS_ELIGIBLE_STATES,
}
"""Raw provider states an instance must be in to be selected for an action."""
