"""Core ec2ctl functionality."""

from __future__ import annotations

from ec2ctl.core.interfaces import ComputeProvider, RegionProvider

__all__ = [
    "ComputeProvider",
    "RegionProvider",
]
