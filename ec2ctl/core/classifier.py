"""Matching and labelling of raw EC2 instance records.

Everything here is a pure function of its arguments: the same raw record
always yields the same decision and the same Instance value.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from ec2ctl.constants import ACTION_ELIGIBLE_STATES, Action, InstanceState, Lifecycle
from ec2ctl.core.models import Instance
from ec2ctl.providers.aws.constants import ENVIRONMENT_TAG, HIBERNATE_REASON_CODE, NAME_TAG


def eligible_states(action: Action | str | None) -> frozenset[str]:
    """Return the raw provider states an action may select.

    Parameters
    ----------
    action : Action | str | None
        Action identifier; None means status

    Returns
    -------
    frozenset[str]
        Raw instance state names

    Raises
    ------
    InvalidAction
        If the action identifier is unknown
    """
    return ACTION_ELIGIBLE_STATES[Action.parse(action)]


def tags_of(raw: Mapping[str, Any]) -> dict[str, str]:
    return {tag["Key"]: tag.get("Value", "") for tag in raw.get("Tags") or []}


def raw_state(raw: Mapping[str, Any]) -> str:
    return (raw.get("State") or {}).get("Name", "")


def derive_status(raw: Mapping[str, Any]) -> str:
    """Return the display status of a raw instance record.

    A stopped instance whose last transition reason is a user-initiated
    hibernation is reported as hibernated.
    """
    status = raw_state(raw)
    reason = (raw.get("StateReason") or {}).get("Code")

    if status == InstanceState.STOPPED.value and reason == HIBERNATE_REASON_CODE:
        return InstanceState.HIBERNATED.value

    return status


def matches(
    raw: Mapping[str, Any],
    tag_filters: Mapping[str, str] | None,
    action: Action | str | None,
    explicit_ids: Collection[str] | None = None,
) -> bool:
    """Decide whether a raw instance record is selected.

    Parameters
    ----------
    raw : Mapping[str, Any]
        Instance record as returned by describe_instances
    tag_filters : Mapping[str, str] | None
        Required tag values; every pair must be present on the instance
    action : Action | str | None
        Action the selection is for
    explicit_ids : Collection[str] | None
        When non-empty, the instance id must be a member

    Returns
    -------
    bool
        True if the instance id, tags and state all qualify
    """
    if explicit_ids and raw.get("InstanceId") not in explicit_ids:
        return False

    if tag_filters:
        tags = tags_of(raw)
        for key, value in tag_filters.items():
            if tags.get(key) != value:
                return False

    return raw_state(raw) in eligible_states(action)


def classify(
    raw: Mapping[str, Any],
    region: str,
    availability_zones: Mapping[str, str] | None = None,
    spot_request_types: Mapping[str, str] | None = None,
) -> Instance:
    """Build an Instance from a raw describe_instances record.

    Parameters
    ----------
    raw : Mapping[str, Any]
        Instance record as returned by describe_instances
    region : str
        Region the record was found in
    availability_zones : Mapping[str, str] | None
        Instance id to zone, from describe_instance_status; used when the
        record carries no placement
    spot_request_types : Mapping[str, str] | None
        Spot request id to request type (one-time or persistent)

    Returns
    -------
    Instance
        Classified instance
    """
    instance_id = raw["InstanceId"]
    tags = tags_of(raw)

    availability_zone = (raw.get("Placement") or {}).get("AvailabilityZone")
    if not availability_zone and availability_zones:
        availability_zone = availability_zones.get(instance_id)

    lifecycle = raw.get("InstanceLifecycle") or Lifecycle.ON_DEMAND.value
    spot_request_type = None
    spot_request_id = raw.get("SpotInstanceRequestId")
    if lifecycle == Lifecycle.SPOT.value and spot_request_id and spot_request_types:
        spot_request_type = spot_request_types.get(spot_request_id)

    return Instance(
        id=instance_id,
        region=region,
        status=derive_status(raw),
        instance_type=raw.get("InstanceType"),
        name=tags.get(NAME_TAG),
        environment=tags.get(ENVIRONMENT_TAG),
        availability_zone=availability_zone,
        private_ip=raw.get("PrivateIpAddress"),
        lifecycle=lifecycle,
        spot_request_type=spot_request_type,
        hibernation_configured=bool((raw.get("HibernationOptions") or {}).get("Configured")),
    )
