"""Protocols the engine expects from cloud provider adapters."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol


class ComputeProvider(Protocol):
    """Regional inventory and lifecycle calls used by the engine.

    Mutating calls take a ``dry_run`` flag; a dry run that would have
    succeeded is reported by raising ``ProviderAPIError`` with the provider's
    authorized code.
    """

    def describe_instances(self, filters: list[dict[str, Any]]) -> list[dict[str, Any]]: ...

    def describe_instance_zones(self, filters: list[dict[str, Any]]) -> dict[str, str]: ...

    def describe_spot_request_types(self, request_ids: list[str]) -> dict[str, str]: ...

    def start_instances(self, instance_ids: list[str], dry_run: bool) -> list[dict[str, Any]]: ...

    def stop_instances(
        self, instance_ids: list[str], dry_run: bool, hibernate: bool = False
    ) -> list[dict[str, Any]]: ...

    def terminate_instances(
        self, instance_ids: list[str], dry_run: bool
    ) -> list[dict[str, Any]]: ...

    def modify_instance_type(self, instance_id: str, instance_type: str, dry_run: bool) -> None: ...


class RegionProvider(Protocol):
    """Account-level region resolution."""

    def resolve(self, explicit_regions: Sequence[str] | None = None) -> list[str]: ...

    def validate_regions(self, regions: Sequence[str]) -> None: ...
