"""Parallel multi-region inventory collection."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any

from ec2ctl.constants import Action, Lifecycle
from ec2ctl.core.classifier import classify, eligible_states, matches
from ec2ctl.core.errors import RegionQueryFailed
from ec2ctl.core.interfaces import ComputeProvider
from ec2ctl.core.models import AccountSummary, InventoryResult, RegionFailure, RegionSummary
from ec2ctl.providers.exceptions import ProviderAPIError, ProviderCredentialsError, ProviderError

logger = logging.getLogger(__name__)


def build_filters(
    tag_filters: Mapping[str, str] | None,
    action: Action | str | None,
    explicit_ids: Collection[str] | None = None,
) -> list[dict[str, Any]]:
    """Build the describe_instances filters for one inventory query.

    Parameters
    ----------
    tag_filters : Mapping[str, str] | None
        Required tag values
    action : Action | str | None
        Action whose eligible states restrict the query
    explicit_ids : Collection[str] | None
        Instance ids to restrict the query to

    Returns
    -------
    list[dict[str, Any]]
        EC2 filters: state first, then one per tag, then instance ids
    """
    filters: list[dict[str, Any]] = [
        {"Name": "instance-state-name", "Values": sorted(eligible_states(action))}
    ]

    for key, value in (tag_filters or {}).items():
        filters.append({"Name": f"tag:{key}", "Values": [value]})

    if explicit_ids:
        filters.append({"Name": "instance-id", "Values": sorted(explicit_ids)})

    return filters


def missing_instance_ids(summary: AccountSummary, explicit_ids: Iterable[str]) -> list[str]:
    """Return requested instance ids that no region returned, in request order."""
    found = set(summary.instance_ids())
    return [instance_id for instance_id in dict.fromkeys(explicit_ids) if instance_id not in found]


class InventoryCollector:
    """Fan inventory queries out to every region and join the results.

    Parameters
    ----------
    compute_provider_factory : Callable[[str], ComputeProvider]
        Creates the regional EC2 client wrapper for a region code
    max_workers : int | None
        Thread pool size; defaults to one worker per region
    region_timeout : float | None
        Seconds to wait for all regions before reporting stragglers as
        failed; None waits indefinitely
    """

    def __init__(
        self,
        compute_provider_factory: Callable[[str], ComputeProvider],
        max_workers: int | None = None,
        region_timeout: float | None = None,
    ) -> None:
        self.compute_provider_factory = compute_provider_factory
        self.max_workers = max_workers
        self.region_timeout = region_timeout

    def collect(
        self,
        regions: Sequence[str],
        tag_filters: Mapping[str, str] | None = None,
        action: Action | str | None = Action.STATUS,
        explicit_ids: Collection[str] | None = None,
    ) -> InventoryResult:
        """Query every region in parallel and join one summary per region.

        Parameters
        ----------
        regions : Sequence[str]
            Region codes to query
        tag_filters : Mapping[str, str] | None
            Required tag values
        action : Action | str | None
            Action whose eligible states select instances
        explicit_ids : Collection[str] | None
            Instance ids to restrict the selection to

        Returns
        -------
        InventoryResult
            Non-empty region summaries in completion order plus the regions
            that failed

        Raises
        ------
        ProviderCredentialsError
            If any region failed because credentials are missing
        InvalidAction
            If the action identifier is unknown
        """
        action = Action.parse(action)
        explicit = frozenset(explicit_ids or ())
        tags = dict(tag_filters or {})

        if not regions:
            return InventoryResult(summary=AccountSummary())

        summaries: list[RegionSummary] = []
        failures: list[RegionFailure] = []
        timed_out = False

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers or len(regions),
            thread_name_prefix="ec2ctl-inventory",
        )
        futures: dict[Future, str] = {
            executor.submit(self._query_region_safely, region, tags, action, explicit): region
            for region in regions
        }
        pending = set(futures)

        try:
            for future in as_completed(futures, timeout=self.region_timeout):
                pending.discard(future)
                self._join(future.result(), summaries, failures)
        except FuturesTimeoutError:
            timed_out = True
            for future in pending:
                region = futures[future]
                if future.done():
                    self._join(future.result(), summaries, failures)
                    continue
                error = RegionQueryFailed(
                    region, f"query timed out after {self.region_timeout}s in {region}"
                )
                logger.warning("Failed to query region %s: %s", region, error)
                failures.append(RegionFailure(region=region, error=error))
        finally:
            executor.shutdown(wait=not timed_out, cancel_futures=timed_out)

        for failure in failures:
            if isinstance(failure.error.__cause__, ProviderCredentialsError):
                raise failure.error.__cause__

        logger.debug(
            "Collected %d instances from %d of %d regions",
            sum(len(summary) for summary in summaries),
            len(summaries),
            len(regions),
        )
        return InventoryResult(summary=AccountSummary(tuple(summaries)), failures=tuple(failures))

    @staticmethod
    def _join(
        outcome: RegionSummary | RegionFailure,
        summaries: list[RegionSummary],
        failures: list[RegionFailure],
    ) -> None:
        if isinstance(outcome, RegionFailure):
            failures.append(outcome)
        elif outcome.instances:
            summaries.append(outcome)

    def _query_region_safely(
        self,
        region: str,
        tag_filters: Mapping[str, str],
        action: Action,
        explicit_ids: frozenset[str],
    ) -> RegionSummary | RegionFailure:
        try:
            return self.query_region(region, tag_filters, action, explicit_ids)
        except RegionQueryFailed as e:
            logger.warning("Failed to query region %s: %s", region, e)
            return RegionFailure(region=region, error=e)
        except Exception as e:
            logger.debug("Unexpected error querying %s", region, exc_info=True)
            logger.warning("Failed to query region %s: %s", region, e)
            error = RegionQueryFailed(region, f"unexpected {type(e).__name__}: {e}")
            error.__cause__ = e
            return RegionFailure(region=region, error=error)

    def query_region(
        self,
        region: str,
        tag_filters: Mapping[str, str] | None,
        action: Action | str | None,
        explicit_ids: Collection[str] | None = None,
    ) -> RegionSummary:
        """Query one region and return its matching instances.

        Parameters
        ----------
        region : str
            Region code
        tag_filters : Mapping[str, str] | None
            Required tag values
        action : Action | str | None
            Action whose eligible states select instances
        explicit_ids : Collection[str] | None
            Instance ids to restrict the selection to

        Returns
        -------
        RegionSummary
            Matching instances sorted by environment then name, possibly empty

        Raises
        ------
        RegionQueryFailed
            If any describe call for the region fails
        """
        filters = build_filters(tag_filters, action, explicit_ids)
        compute_provider = self.compute_provider_factory(region)

        try:
            raw_instances = compute_provider.describe_instances(filters)
            zones = compute_provider.describe_instance_zones(filters[:1])

            spot_request_ids = sorted(
                {
                    raw["SpotInstanceRequestId"]
                    for raw in raw_instances
                    if raw.get("InstanceLifecycle") == Lifecycle.SPOT.value
                    and raw.get("SpotInstanceRequestId")
                }
            )
            spot_types = compute_provider.describe_spot_request_types(spot_request_ids)

            instances = [
                classify(raw, region, availability_zones=zones, spot_request_types=spot_types)
                for raw in raw_instances
                if matches(raw, tag_filters, action, explicit_ids)
            ]
        except ProviderError as e:
            error_code = e.error_code if isinstance(e, ProviderAPIError) else None
            raise RegionQueryFailed(region, str(e), error_code=error_code) from e
        except (KeyError, TypeError) as e:
            raise RegionQueryFailed(region, f"malformed response: {e}") from e

        return RegionSummary.build(region, instances)
