from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Sequence
from typing import Any

from rich.console import Console

from ec2ctl.cli.parsing import apply_cli_overrides, parse_instance_ids
from ec2ctl.constants import EXIT_SUCCESS, Action
from ec2ctl.core.collector import InventoryCollector, missing_instance_ids
from ec2ctl.core.config import CommandRequest
from ec2ctl.core.confirmation import ConfirmationGate
from ec2ctl.core.dispatcher import ActionDispatcher
from ec2ctl.core.errors import InstanceNotFound
from ec2ctl.core.grouper import group
from ec2ctl.core.interfaces import ComputeProvider, RegionProvider
from ec2ctl.core.models import AccountSummary, RegionDispatchResult
from ec2ctl.output import render
from ec2ctl.providers.aws.constants import PERMISSION_ERROR_CODES
from ec2ctl.providers.exceptions import ProviderAPIError
from ec2ctl.utils import log_and_print_error

logger = logging.getLogger(__name__)


def raise_if_unauthorized_everywhere(errors: Sequence[Exception]) -> None:
    """Escalate when every region was refused for lack of IAM permissions.

    Parameters
    ----------
    errors : Sequence[Exception]
        One region-scoped error per region that was tried

    Raises
    ------
    ProviderAPIError
        The first region's provider error, when every region failed with a
        permission error code
    """
    denied = [
        error.__cause__
        for error in errors
        if isinstance(error.__cause__, ProviderAPIError)
        and error.__cause__.error_code in PERMISSION_ERROR_CODES
    ]
    if errors and len(denied) == len(errors):
        raise denied[0]


class LifecycleManager:
    """Runs inventory and lifecycle commands (status, start, stop, hibernate,
    terminate, modify) across regions.

    Parameters
    ----------
    config_loader : Any
        Configuration loader instance
    compute_provider_factory : Callable[[str], ComputeProvider]
        Factory function to create regional compute provider instances
    region_catalog_factory : Callable[[str], RegionProvider]
        Factory creating a region catalog for a default region
    console : Console | None
        Console receiving command output
    input_func : Callable[[str], str]
        Reads confirmation answers from the operator
    log_and_print_error : Callable[..., None]
        Function to log and print errors to stderr
    """

    def __init__(
        self,
        config_loader: Any,
        compute_provider_factory: Callable[[str], ComputeProvider],
        region_catalog_factory: Callable[[str], RegionProvider],
        console: Console | None = None,
        input_func: Callable[[str], str] = input,
        log_and_print_error: Callable[..., None] = log_and_print_error,
    ) -> None:
        self.config_loader = config_loader
        self.compute_provider_factory = compute_provider_factory
        self.region_catalog_factory = region_catalog_factory
        self.console = console or Console()
        self.input_func = input_func
        self.log_and_print_error = log_and_print_error

    def build_request(
        self,
        action: Action | str,
        instance_ids: Sequence[str] | str | None = None,
        regions: str | Sequence[str] | None = None,
        tag: str | Sequence[str] | None = None,
        output: str | None = None,
        instance_type: str | None = None,
        force: bool = False,
        config: str | None = None,
    ) -> tuple[CommandRequest, dict[str, Any]]:
        """Merge configuration and CLI arguments into one command request.

        Parameters
        ----------
        action : Action | str
            Command being run
        instance_ids : Sequence[str] | str | None
            Explicit instance ids
        regions : str | Sequence[str] | None
            Regions override
        tag : str | Sequence[str] | None
            ``Key:Value`` tag filters override
        output : str | None
            Output format override
        instance_type : str | None
            Target type for modify
        force : bool
            Skip confirmation
        config : str | None
            Explicit config file path

        Returns
        -------
        tuple[CommandRequest, dict[str, Any]]
            The request and the merged settings it was built from

        Raises
        ------
        ValueError
            If configuration or arguments are invalid
        """
        file_config = self.config_loader.load_config(config)
        overrides: dict[str, Any] = {}
        apply_cli_overrides(overrides, regions=regions, tag=tag, output=output)
        settings = self.config_loader.get_settings(file_config, overrides)

        request = CommandRequest(
            action=Action.parse(action),
            regions=tuple(settings["regions"]),
            tag_filters=dict(settings["tags"]),
            instance_ids=tuple(parse_instance_ids(instance_ids)),
            instance_type=instance_type,
            output=settings["output"],
            force=force,
        )
        logger.debug("Built request %s", request)
        return request, settings

    def status(self, instance_ids: Sequence[str] = (), **kwargs: Any) -> int:
        """Show the instances matching the filters, grouped by region."""
        return self.execute(*self.build_request(Action.STATUS, instance_ids, **kwargs))

    def start(self, instance_ids: Sequence[str] = (), **kwargs: Any) -> int:
        """Start matching stopped instances after confirmation."""
        return self.execute(*self.build_request(Action.START, instance_ids, **kwargs))

    def stop(self, instance_ids: Sequence[str] = (), **kwargs: Any) -> int:
        """Stop matching running instances after confirmation."""
        return self.execute(*self.build_request(Action.STOP, instance_ids, **kwargs))

    def hibernate(self, instance_ids: Sequence[str] = (), **kwargs: Any) -> int:
        """Hibernate matching running instances after confirmation."""
        return self.execute(*self.build_request(Action.HIBERNATE, instance_ids, **kwargs))

    def terminate(
        self, instance_ids: Sequence[str] = (), force: bool = False, **kwargs: Any
    ) -> int:
        """Terminate matching instances; only an explicit 'yes' approves."""
        return self.execute(
            *self.build_request(Action.TERMINATE, instance_ids, force=force, **kwargs)
        )

    def modify(
        self, instance_ids: Sequence[str] = (), instance_type: str | None = None, **kwargs: Any
    ) -> int:
        """Change the instance type of matching instances after confirmation.

        Raises
        ------
        ValueError
            If no target instance type is given
        """
        if not instance_type:
            raise ValueError("modify requires --type with the target instance type")

        return self.execute(
            *self.build_request(
                Action.MODIFY_TYPE, instance_ids, instance_type=instance_type, **kwargs
            )
        )

    def execute(self, request: CommandRequest, settings: dict[str, Any]) -> int:
        """Run one command request end to end.

        Parameters
        ----------
        request : CommandRequest
            What to run and against which instances
        settings : dict[str, Any]
            Merged settings (default region, worker and timeout limits)

        Returns
        -------
        int
            Process exit code; partial regional failures still succeed

        Raises
        ------
        ProviderCredentialsError
            If cloud provider credentials are not configured
        ProviderAPIError
            If every region refused the request for lack of IAM permissions
        RegionDiscoveryFailed
            If the enabled regions cannot be listed
        ValueError
            If an explicitly requested region does not exist
        """
        region_catalog = self.region_catalog_factory(settings["default_region"])

        if request.regions:
            region_catalog.validate_regions(request.regions)
        regions = region_catalog.resolve(request.regions)

        collector = InventoryCollector(
            self.compute_provider_factory,
            max_workers=settings.get("max_workers"),
            region_timeout=settings.get("region_timeout"),
        )
        inventory = collector.collect(
            regions,
            tag_filters=request.tag_filters,
            action=request.action,
            explicit_ids=request.instance_ids,
        )

        if len(inventory.failures) == len(regions):
            raise_if_unauthorized_everywhere([failure.error for failure in inventory.failures])

        for failure in inventory.failures:
            self.log_and_print_error("Failed to query region %s: %s", failure.region, failure.error)

        summary = inventory.summary.sorted_by_region()

        if request.action is Action.STATUS:
            self._show_status(summary, request.output)
        else:
            self._run_action(summary, request, settings)

        self._report_missing(summary, request.instance_ids)
        return EXIT_SUCCESS

    def _show_status(self, summary: AccountSummary, output: str) -> None:
        if summary.is_empty and output == "table":
            self.console.print("No instances are available for status command")
            return

        render(summary, output, self.console)

    def _run_action(
        self, summary: AccountSummary, request: CommandRequest, settings: dict[str, Any]
    ) -> None:
        gate = ConfirmationGate(console=self.console, input_func=self.input_func)
        matched = gate.confirm(summary, request.action, force=request.force)

        if matched.is_empty:
            return

        groups = group(matched)
        dispatcher = ActionDispatcher(
            self.compute_provider_factory, max_workers=settings.get("max_workers")
        )
        count = sum(len(ids) for ids in groups.values())

        with self.console.status(f"Performing {request.action.value} on {count} instances..."):
            results = dispatcher.dispatch_all(
                groups, request.action, instance_type=request.instance_type
            )

        for result in sorted(results, key=lambda r: r.region):
            self._report_result(result)

        errors = [result.error for result in results if result.error is not None]
        if len(errors) == len(results):
            raise_if_unauthorized_everywhere(errors)

    def _report_result(self, result: RegionDispatchResult) -> None:
        for change in result.changes:
            if change.unchanged:
                self.console.print(
                    f"Instance {change.instance_id} was already in a "
                    f"{change.previous_state} state.",
                    highlight=False,
                )
            else:
                self.console.print(
                    f"Instance {change.instance_id} state changed from "
                    f"{change.previous_state} to {change.new_state}.",
                    highlight=False,
                )

        for type_change in result.type_changes:
            self.console.print(
                f"Instance {type_change.instance_id} type changed to "
                f"{type_change.instance_type}.",
                highlight=False,
            )

        if result.error is not None:
            self.log_and_print_error(
                "Failed to %s instances %s in region %s: %s",
                result.action.value,
                ", ".join(result.instance_ids),
                result.region,
                result.error,
            )

    def _report_missing(self, summary: AccountSummary, instance_ids: Sequence[str]) -> None:
        for instance_id in missing_instance_ids(summary, instance_ids):
            error = InstanceNotFound(instance_id)
            logger.debug("Requested instance %s matched no region", error.instance_id)
            print(error, file=sys.stderr)
