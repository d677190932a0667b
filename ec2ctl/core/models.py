"""Read-only inventory snapshots and dispatch outcomes."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from ec2ctl.constants import Action


@dataclass(frozen=True)
class Instance:
    """One virtual machine as seen by a single inventory query."""

    id: str
    region: str
    status: str
    instance_type: str | None = None
    name: str | None = None
    environment: str | None = None
    availability_zone: str | None = None
    private_ip: str | None = None
    lifecycle: str = "on-demand"
    spot_request_type: str | None = None
    hibernation_configured: bool = False

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.environment or "", self.name or "")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RegionSummary:
    """Instances discovered in one region, sorted by environment then name."""

    region: str
    instances: tuple[Instance, ...] = ()

    @classmethod
    def build(cls, region: str, instances: list[Instance]) -> RegionSummary:
        """Create a summary with instances in presentation order.

        Parameters
        ----------
        region : str
            Region code
        instances : list[Instance]
            Instances in provider order

        Returns
        -------
        RegionSummary
            Summary sorted by (environment, name); ties keep provider order
        """
        return cls(region=region, instances=tuple(sorted(instances, key=lambda i: i.sort_key)))

    def __len__(self) -> int:
        return len(self.instances)

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region,
            "instances": [instance.to_dict() for instance in self.instances],
        }


@dataclass(frozen=True)
class AccountSummary:
    """Region summaries for one account, in the order regions completed."""

    regions: tuple[RegionSummary, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(self.regions)

    def instances(self) -> list[Instance]:
        return [instance for region in self.regions for instance in region.instances]

    def instance_ids(self) -> list[str]:
        return [instance.id for instance in self.instances()]

    def sorted_by_region(self) -> AccountSummary:
        """Return a copy with regions ordered by region code."""
        return AccountSummary(regions=tuple(sorted(self.regions, key=lambda r: r.region)))

    def to_list(self) -> list[dict[str, Any]]:
        return [region.to_dict() for region in self.regions]


@dataclass(frozen=True)
class RegionFailure:
    """Inventory query error confined to one region."""

    region: str
    error: Exception


@dataclass(frozen=True)
class InventoryResult:
    """Outcome of one inventory round across all requested regions."""

    summary: AccountSummary
    failures: tuple[RegionFailure, ...] = ()


@dataclass(frozen=True)
class StateChange:
    """Lifecycle transition the provider reported for one instance."""

    instance_id: str
    previous_state: str
    new_state: str

    @property
    def unchanged(self) -> bool:
        """True when the provider performed a no-op for this instance."""
        return self.previous_state == self.new_state


@dataclass(frozen=True)
class TypeChange:
    """Instance type applied to one instance."""

    instance_id: str
    instance_type: str


@dataclass(frozen=True)
class RegionDispatchResult:
    """Outcome of one region's batch of a mutating action."""

    region: str
    action: Action
    instance_ids: tuple[str, ...]
    changes: tuple[StateChange, ...] = ()
    type_changes: tuple[TypeChange, ...] = ()
    error: Exception | None = field(default=None)

    @property
    def succeeded(self) -> bool:
        return self.error is None
