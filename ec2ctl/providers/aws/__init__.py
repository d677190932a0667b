"""AWS provider implementation."""

from ec2ctl.providers.aws.compute import EC2Manager
from ec2ctl.providers.aws.regions import RegionCatalog

__all__ = ["EC2Manager", "RegionCatalog"]
