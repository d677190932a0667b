"""Execution of mutating actions with a dry-run permission probe.

Every mutating provider call goes through two steps. The probe issues the
call with the dry-run flag set; only a probe answered with the authorized
signal yields an ``AuthorizedProbe``, and only an ``AuthorizedProbe`` can
issue the committing call, exactly once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Generic, TypeVar

from ec2ctl.constants import Action
from ec2ctl.core.errors import ActionRejected, InvalidAction, PermissionDenied
from ec2ctl.core.interfaces import ComputeProvider
from ec2ctl.core.models import RegionDispatchResult, StateChange, TypeChange
from ec2ctl.providers.aws.utils import is_dry_run_authorized
from ec2ctl.providers.exceptions import ProviderAPIError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthorizedProbe(Generic[T]):
    """A dry run the provider confirmed; holds the right to commit once."""

    def __init__(self, region: str, operation: str, call: Callable[[bool], T]) -> None:
        self.region = region
        self.operation = operation
        self._call = call
        self._committed = False

    def commit(self) -> T:
        """Issue the state-changing call.

        Returns
        -------
        T
            Result of the committing call

        Raises
        ------
        ActionRejected
            If the committing call fails
        RuntimeError
            If the probe was already committed
        """
        if self._committed:
            raise RuntimeError(f"{self.operation} in {self.region} already committed")
        self._committed = True

        try:
            return self._call(False)
        except ProviderError as e:
            error_code = e.error_code if isinstance(e, ProviderAPIError) else None
            raise ActionRejected(
                self.region, f"{self.operation} failed: {e}", error_code=error_code
            ) from e


def probe(region: str, operation: str, call: Callable[[bool], T]) -> AuthorizedProbe[T]:
    """Issue a call with the dry-run flag and check it was authorized.

    Parameters
    ----------
    region : str
        Region the call targets
    operation : str
        Description used in errors and logs
    call : Callable[[bool], T]
        Provider call taking the dry-run flag

    Returns
    -------
    AuthorizedProbe[T]
        Handle able to issue the committing call

    Raises
    ------
    PermissionDenied
        If the dry run fails with anything but the authorized signal
    """
    try:
        call(True)
    except ProviderAPIError as e:
        if is_dry_run_authorized(e.error_code):
            logger.debug("Dry run for %s in %s authorized", operation, region)
            return AuthorizedProbe(region, operation, call)
        raise PermissionDenied(
            region, f"{operation} dry run failed: {e}", error_code=e.error_code
        ) from e
    except ProviderError as e:
        raise PermissionDenied(region, f"{operation} dry run failed: {e}") from e

    raise PermissionDenied(region, f"{operation} dry run returned without authorization")


def run_with_dry_run(region: str, operation: str, call: Callable[[bool], T]) -> T:
    """Probe a call with the dry-run flag, then commit it."""
    return probe(region, operation, call).commit()


def state_change_from(raw: Mapping[str, Any]) -> StateChange:
    return StateChange(
        instance_id=raw["InstanceId"],
        previous_state=raw["PreviousState"]["Name"],
        new_state=raw["CurrentState"]["Name"],
    )


def unexpected_failure(region: str, action: Action, error: Exception) -> ActionRejected:
    """Wrap an error outside the provider taxonomy as a region-scoped rejection."""
    logger.debug("Unexpected error during %s in %s", action.value, region, exc_info=error)
    rejected = ActionRejected(region, f"{action.value} failed: {type(error).__name__}: {error}")
    rejected.__cause__ = error
    return rejected


class ActionDispatcher:
    """Run a mutating action against per-region batches of instances.

    Parameters
    ----------
    compute_provider_factory : Callable[[str], ComputeProvider]
        Creates the regional EC2 client wrapper for a region code
    max_workers : int | None
        Thread pool size for dispatch_all; defaults to one worker per region
    """

    def __init__(
        self,
        compute_provider_factory: Callable[[str], ComputeProvider],
        max_workers: int | None = None,
    ) -> None:
        self.compute_provider_factory = compute_provider_factory
        self.max_workers = max_workers

    def dispatch(
        self,
        region: str,
        action: Action | str,
        instance_ids: Sequence[str],
        instance_type: str | None = None,
    ) -> list[StateChange | TypeChange]:
        """Run an action on one region's batch and return the outcomes.

        Raises
        ------
        PermissionDenied
            If the dry-run probe is refused
        ActionRejected
            If the committing call fails
        InvalidAction
            If the action is not a mutating action
        """
        result = self.dispatch_region(region, action, instance_ids, instance_type)
        if result.error is not None:
            raise result.error
        return [*result.changes, *result.type_changes]

    def dispatch_region(
        self,
        region: str,
        action: Action | str,
        instance_ids: Sequence[str],
        instance_type: str | None = None,
    ) -> RegionDispatchResult:
        """Run an action on one region's batch, capturing region-scoped errors.

        Parameters
        ----------
        region : str
            Region code
        action : Action | str
            Mutating action to run
        instance_ids : Sequence[str]
            Instances in the region
        instance_type : str | None
            Target type, required for modify-type

        Returns
        -------
        RegionDispatchResult
            State or type changes, or the error that aborted the batch

        Raises
        ------
        InvalidAction
            If the action is not a mutating action
        ValueError
            If modify-type is requested without a target type
        """
        action = self._mutating_action(action, instance_type)
        ids = list(instance_ids)

        logger.debug("Performing %s on %d instances in %s", action.value, len(ids), region)

        if action is Action.MODIFY_TYPE:
            return self._modify_types(region, ids, instance_type)

        try:
            compute_provider = self.compute_provider_factory(region)
            call = self._state_call(compute_provider, action, ids)
            raw_changes = run_with_dry_run(region, f"{action.value} {', '.join(ids)}", call)
            changes = tuple(state_change_from(raw) for raw in raw_changes)
        except (PermissionDenied, ActionRejected) as e:
            error: Exception = e
        except Exception as e:
            error = unexpected_failure(region, action, e)
        else:
            return RegionDispatchResult(region, action, tuple(ids), changes=changes)

        logger.warning("Failed to %s instances in %s: %s", action.value, region, error)
        return RegionDispatchResult(region, action, tuple(ids), error=error)

    def dispatch_all(
        self,
        groups: Mapping[str, Sequence[str]],
        action: Action | str,
        instance_type: str | None = None,
    ) -> list[RegionDispatchResult]:
        """Dispatch every region's batch in parallel.

        Parameters
        ----------
        groups : Mapping[str, Sequence[str]]
            Region code to instance ids
        action : Action | str
            Mutating action to run
        instance_type : str | None
            Target type, required for modify-type

        Returns
        -------
        list[RegionDispatchResult]
            One result per region, in completion order
        """
        action = self._mutating_action(action, instance_type)
        if not groups:
            return []

        results: list[RegionDispatchResult] = []
        with ThreadPoolExecutor(
            max_workers=self.max_workers or len(groups),
            thread_name_prefix="ec2ctl-dispatch",
        ) as executor:
            futures = [
                executor.submit(self.dispatch_region, region, action, ids, instance_type)
                for region, ids in groups.items()
            ]
            for future in as_completed(futures):
                results.append(future.result())

        return results

    @staticmethod
    def _mutating_action(action: Action | str, instance_type: str | None) -> Action:
        action = Action.parse(action)
        if not action.is_mutating:
            raise InvalidAction(action.value)
        if action is Action.MODIFY_TYPE and not instance_type:
            raise ValueError("modify-type requires a target instance type")
        return action

    @staticmethod
    def _state_call(
        compute_provider: ComputeProvider, action: Action, ids: list[str]
    ) -> Callable[[bool], Any]:
        if action is Action.START:
            return lambda dry_run: compute_provider.start_instances(ids, dry_run=dry_run)
        if action is Action.STOP:
            return lambda dry_run: compute_provider.stop_instances(ids, dry_run=dry_run)
        if action is Action.HIBERNATE:
            return lambda dry_run: compute_provider.stop_instances(
                ids, dry_run=dry_run, hibernate=True
            )
        if action is Action.TERMINATE:
            return lambda dry_run: compute_provider.terminate_instances(ids, dry_run=dry_run)
        raise InvalidAction(action.value)

    def _modify_types(
        self, region: str, instance_ids: list[str], instance_type: str
    ) -> RegionDispatchResult:
        type_changes: list[TypeChange] = []

        try:
            compute_provider = self.compute_provider_factory(region)
            for instance_id in instance_ids:
                run_with_dry_run(
                    region,
                    f"modify-type {instance_id} to {instance_type}",
                    lambda dry_run, instance_id=instance_id: compute_provider.modify_instance_type(
                        instance_id, instance_type, dry_run=dry_run
                    ),
                )
                type_changes.append(TypeChange(instance_id, instance_type))
        except (PermissionDenied, ActionRejected) as e:
            error: Exception = e
        except Exception as e:
            error = unexpected_failure(region, Action.MODIFY_TYPE, e)
        else:
            return RegionDispatchResult(
                region, Action.MODIFY_TYPE, tuple(instance_ids), type_changes=tuple(type_changes)
            )

        logger.warning("Failed to modify instance types in %s: %s", region, error)
        return RegionDispatchResult(
            region,
            Action.MODIFY_TYPE,
            tuple(instance_ids),
            type_changes=tuple(type_changes),
            error=error,
        )
