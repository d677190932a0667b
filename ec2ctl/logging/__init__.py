"""Logging helpers routing records to stdout or stderr."""

from ec2ctl.logging.filters import StreamRoutingFilter
from ec2ctl.logging.formatters import StreamFormatter

__all__ = ["StreamFormatter", "StreamRoutingFilter"]
