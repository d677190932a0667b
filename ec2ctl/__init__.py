"""ec2ctl - EC2 inventory and batch lifecycle control across regions."""

__version__ = "0.1.0"
