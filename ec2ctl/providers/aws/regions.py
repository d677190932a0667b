"""Resolution of the regions a command operates in."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import boto3

from ec2ctl.constants import DEFAULT_REGION
from ec2ctl.core.errors import RegionDiscoveryFailed
from ec2ctl.providers.aws.constants import REGION_OPT_IN_STATUSES
from ec2ctl.providers.aws.errors import handle_aws_errors
from ec2ctl.providers.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
)

logger = logging.getLogger(__name__)


class RegionCatalog:
    """Resolve the set of regions to query.

    Parameters
    ----------
    boto3_client_factory : Callable[..., Any] | None
        Optional factory for creating boto3 clients. If None, uses boto3.client
    default_region : str
        Region used for the account-level describe_regions call
    """

    def __init__(
        self,
        boto3_client_factory: Any | None = None,
        default_region: str = DEFAULT_REGION,
    ) -> None:
        self.boto3_client_factory = boto3_client_factory or boto3.client
        self.default_region = default_region

    def resolve(self, explicit_regions: Sequence[str] | None = None) -> list[str]:
        """Return the regions to operate in.

        Parameters
        ----------
        explicit_regions : Sequence[str] | None
            Operator-specified regions; returned as given when non-empty

        Returns
        -------
        list[str]
            Region codes

        Raises
        ------
        RegionDiscoveryFailed
            If the regions have to be discovered and the provider call fails
        """
        if explicit_regions:
            return list(dict.fromkeys(explicit_regions))

        regions = self._describe_regions(
            Filters=[{"Name": "opt-in-status", "Values": REGION_OPT_IN_STATUSES}]
        )
        logger.debug("Discovered %d enabled regions", len(regions))
        return regions

    def validate_regions(self, regions: Sequence[str]) -> None:
        """Validate that region strings are known AWS regions.

        Parameters
        ----------
        regions : Sequence[str]
            AWS region strings to validate

        Raises
        ------
        ValueError
            If any region is not a valid AWS region
        """
        if not regions:
            return

        try:
            valid_regions = set(self._describe_regions(AllRegions=True))
        except RegionDiscoveryFailed as e:
            logger.warning(
                "Unable to validate regions %s (%s). Proceeding without validation.",
                ", ".join(regions),
                e,
            )
            return

        invalid = [region for region in regions if region not in valid_regions]
        if invalid:
            raise ValueError(
                f"Invalid region: '{invalid[0]}'. "
                f"Valid regions: {', '.join(sorted(valid_regions))}"
            )

    def _describe_regions(self, **kwargs: Any) -> list[str]:
        try:
            with handle_aws_errors():
                ec2_client = self.boto3_client_factory("ec2", region_name=self.default_region)
                response = ec2_client.describe_regions(**kwargs)
        except (ProviderAPIError, ProviderConnectionError, ProviderCredentialsError) as e:
            raise RegionDiscoveryFailed(f"Unable to discover regions: {e}") from e

        return [region["RegionName"] for region in response.get("Regions", [])]
