"""Regional EC2 client wrapper for ec2ctl."""

from __future__ import annotations

import logging
from typing import Any

import boto3

from ec2ctl.providers.aws.errors import handle_aws_errors

logger = logging.getLogger(__name__)


class EC2Manager:
    """Issue inventory and lifecycle calls against one EC2 region."""

    def __init__(self, region: str, boto3_client_factory: Any | None = None) -> None:
        """Initialize EC2 manager.

        Parameters
        ----------
        region : str
            AWS region for EC2 operations
        boto3_client_factory : Callable[..., Any] | None
            Optional factory for creating boto3 clients. If None, uses boto3.client
        """
        self.region = region
        self.boto3_client_factory = boto3_client_factory or boto3.client
        self.ec2_client = self.boto3_client_factory("ec2", region_name=region)

    def describe_instances(self, filters: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Return raw instance records matching the filters.

        Parameters
        ----------
        filters : list[dict[str, Any]]
            EC2 describe filters

        Returns
        -------
        list[dict[str, Any]]
            Instance records flattened out of their reservations, in
            provider order
        """
        with handle_aws_errors():
            response = self.ec2_client.describe_instances(Filters=filters)

        return [
            instance
            for reservation in response.get("Reservations", [])
            for instance in reservation.get("Instances", [])
        ]

    def describe_instance_zones(self, filters: list[dict[str, Any]]) -> dict[str, str]:
        """Map instance ids to availability zones from instance status.

        Parameters
        ----------
        filters : list[dict[str, Any]]
            EC2 describe filters

        Returns
        -------
        dict[str, str]
            Instance id to availability zone
        """
        with handle_aws_errors():
            response = self.ec2_client.describe_instance_status(
                Filters=filters, IncludeAllInstances=True
            )

        return {
            status["InstanceId"]: status.get("AvailabilityZone", "")
            for status in response.get("InstanceStatuses", [])
        }

    def describe_spot_request_types(self, request_ids: list[str]) -> dict[str, str]:
        """Map spot request ids to their request type.

        Parameters
        ----------
        request_ids : list[str]
            Spot instance request ids

        Returns
        -------
        dict[str, str]
            Request id to type ("one-time" or "persistent")
        """
        if not request_ids:
            return {}

        with handle_aws_errors():
            response = self.ec2_client.describe_spot_instance_requests(
                Filters=[{"Name": "spot-instance-request-id", "Values": request_ids}]
            )

        return {
            request["SpotInstanceRequestId"]: request.get("Type", "")
            for request in response.get("SpotInstanceRequests", [])
        }

    def start_instances(self, instance_ids: list[str], dry_run: bool) -> list[dict[str, Any]]:
        """Start instances and return the reported state changes."""
        with handle_aws_errors():
            response = self.ec2_client.start_instances(
                InstanceIds=instance_ids, DryRun=dry_run
            )
        return response.get("StartingInstances", [])

    def stop_instances(
        self, instance_ids: list[str], dry_run: bool, hibernate: bool = False
    ) -> list[dict[str, Any]]:
        """Stop (or hibernate) instances and return the reported state changes."""
        kwargs: dict[str, Any] = {"InstanceIds": instance_ids, "DryRun": dry_run}
        if hibernate:
            kwargs["Hibernate"] = True

        with handle_aws_errors():
            response = self.ec2_client.stop_instances(**kwargs)
        return response.get("StoppingInstances", [])

    def terminate_instances(self, instance_ids: list[str], dry_run: bool) -> list[dict[str, Any]]:
        """Terminate instances and return the reported state changes."""
        with handle_aws_errors():
            response = self.ec2_client.terminate_instances(
                InstanceIds=instance_ids, DryRun=dry_run
            )
        return response.get("TerminatingInstances", [])

    def modify_instance_type(self, instance_id: str, instance_type: str, dry_run: bool) -> None:
        """Change the instance type of a single instance."""
        with handle_aws_errors():
            self.ec2_client.modify_instance_attribute(
                InstanceId=instance_id,
                InstanceType={"Value": instance_type},
                DryRun=dry_run,
            )
