"""Per-region grouping of a confirmed snapshot."""

from __future__ import annotations

from ec2ctl.core.models import AccountSummary


def group(matched: AccountSummary) -> dict[str, list[str]]:
    """Partition the instances of a snapshot into per-region id lists.

    Mutations are batched per region, so this keeps the number of provider
    calls equal to the number of regions with matches.

    Parameters
    ----------
    matched : AccountSummary
        Confirmed snapshot

    Returns
    -------
    dict[str, list[str]]
        Region code to instance ids, each id listed once under the region
        recorded on the instance
    """
    groups: dict[str, list[str]] = {}
    seen: set[str] = set()

    for instance in matched.instances():
        if instance.id in seen:
            continue
        seen.add(instance.id)
        groups.setdefault(instance.region, []).append(instance.id)

    return groups
