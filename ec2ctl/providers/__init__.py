"""Cloud provider adapters and their provider-agnostic exceptions."""

from __future__ import annotations

from ec2ctl.providers.aws import EC2Manager, RegionCatalog
from ec2ctl.providers.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderError,
)

__all__ = [
    "EC2Manager",
    "RegionCatalog",
    "ProviderError",
    "ProviderAPIError",
    "ProviderCredentialsError",
    "ProviderConnectionError",
]
