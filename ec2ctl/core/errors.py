"""Error taxonomy for the inventory and dispatch engine."""

from __future__ import annotations


class Ec2CtlError(Exception):
    """Base error for ec2ctl."""


class RegionDiscoveryFailed(Ec2CtlError):
    """Raised when the list of regions cannot be resolved.

    Fatal to the whole command: without regions there is nothing to do.
    """


class RegionScopedError(Ec2CtlError):
    """Error confined to a single region.

    Parameters
    ----------
    region : str
        Region the error happened in
    message : str
        Human-readable description
    error_code : str | None
        Provider error code, when one is known
    """

    def __init__(self, region: str, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.region = region
        self.error_code = error_code


class RegionQueryFailed(RegionScopedError):
    """An inventory query failed in one region; other regions proceed."""


class PermissionDenied(RegionScopedError):
    """The dry-run probe failed with anything but the authorized signal."""


class ActionRejected(RegionScopedError):
    """The committing (non dry-run) call failed."""


class InstanceNotFound(Ec2CtlError):
    """An explicitly requested instance matched no region."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"instance {instance_id} not found")
        self.instance_id = instance_id


class InvalidAction(Ec2CtlError, ValueError):
    """An unknown action identifier reached the engine."""

    def __init__(self, action: object) -> None:
        super().__init__(f"invalid action: {action!r}")
        self.action = action
