#!/usr/bin/env python3
"""ec2ctl - EC2 inventory and batch lifecycle control across regions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import boto3

for _boto_module in ["botocore", "boto3", "urllib3"]:
    logging.getLogger(_boto_module).setLevel(logging.WARNING)

from rich.console import Console  # noqa: E402

from ec2ctl.cli.main import main  # noqa: E402
from ec2ctl.core.config import ConfigLoader  # noqa: E402
from ec2ctl.core.interfaces import ComputeProvider  # noqa: E402
from ec2ctl.lifecycle import LifecycleManager  # noqa: E402
from ec2ctl.providers.aws.compute import EC2Manager  # noqa: E402
from ec2ctl.providers.aws.regions import RegionCatalog  # noqa: E402
from ec2ctl.utils import log_and_print_error  # noqa: E402


def session_client(service_name: str, **kwargs: Any) -> Any:
    """Create a boto3 client from its own session.

    Regional clients are created inside worker threads, and boto3 sessions
    must not be shared between threads.
    """
    return boto3.session.Session().client(service_name, **kwargs)


class Ec2Ctl:
    """Main CLI interface for ec2ctl.

    Every command accepts instance ids as positional arguments plus the shared
    flags ``--regions``, ``--tag Key:Value``, ``--output`` and ``--config``.
    """

    def __init__(
        self,
        compute_provider_factory: Callable[[str], ComputeProvider] | None = None,
        boto3_client_factory: Callable | None = None,
        console: Console | None = None,
        input_func: Callable[[str], str] = input,
    ) -> None:
        """Initialize ec2ctl CLI with optional dependency injection."""
        self._config_loader = ConfigLoader()
        self._boto3_client_factory = boto3_client_factory or session_client
        self._compute_provider_factory_override = compute_provider_factory
        self._console = console
        self._input_func = input_func
        self._lifecycle_manager: LifecycleManager | None = None

    @property
    def compute_provider_factory(self) -> Callable[[str], ComputeProvider]:
        """Get the compute provider factory."""
        if self._compute_provider_factory_override is not None:
            return self._compute_provider_factory_override
        return self._create_compute_provider

    def _create_compute_provider(self, region: str) -> EC2Manager:
        return EC2Manager(region=region, boto3_client_factory=self._boto3_client_factory)

    def _create_region_catalog(self, default_region: str) -> RegionCatalog:
        return RegionCatalog(
            boto3_client_factory=self._boto3_client_factory,
            default_region=default_region,
        )

    @property
    def lifecycle_manager(self) -> LifecycleManager:
        """Get the lifecycle manager instance."""
        if self._lifecycle_manager is None:
            self._lifecycle_manager = LifecycleManager(
                config_loader=self._config_loader,
                compute_provider_factory=self.compute_provider_factory,
                region_catalog_factory=self._create_region_catalog,
                console=self._console,
                input_func=self._input_func,
                log_and_print_error=log_and_print_error,
            )
        return self._lifecycle_manager

    def _finish(self, exit_code: int) -> int | None:
        return exit_code

    def status(
        self,
        *instance_ids: str,
        regions: str | None = None,
        tag: str | None = None,
        output: str | None = None,
        config: str | None = None,
    ) -> int | None:
        """Show the instances in every region, grouped by region.

        Parameters
        ----------
        *instance_ids : str
            Restrict the listing to these instance ids
        regions : str | None
            Comma-separated regions to query (default: every enabled region)
        tag : str | None
            Comma-separated Key:Value tag filters
        output : str | None
            Output format: table or json
        config : str | None
            Config file path (default: ~/.ec2ctl.yaml)
        """
        return self._finish(
            self.lifecycle_manager.status(
                instance_ids, regions=regions, tag=tag, output=output, config=config
            )
        )

    def start(
        self,
        *instance_ids: str,
        regions: str | None = None,
        tag: str | None = None,
        output: str | None = None,
        config: str | None = None,
    ) -> int | None:
        """Start matching stopped instances after confirmation."""
        return self._finish(
            self.lifecycle_manager.start(
                instance_ids, regions=regions, tag=tag, output=output, config=config
            )
        )

    def stop(
        self,
        *instance_ids: str,
        regions: str | None = None,
        tag: str | None = None,
        output: str | None = None,
        config: str | None = None,
    ) -> int | None:
        """Stop matching running instances after confirmation."""
        return self._finish(
            self.lifecycle_manager.stop(
                instance_ids, regions=regions, tag=tag, output=output, config=config
            )
        )

    def hibernate(
        self,
        *instance_ids: str,
        regions: str | None = None,
        tag: str | None = None,
        output: str | None = None,
        config: str | None = None,
    ) -> int | None:
        """Hibernate matching running instances after confirmation."""
        return self._finish(
            self.lifecycle_manager.hibernate(
                instance_ids, regions=regions, tag=tag, output=output, config=config
            )
        )

    def terminate(
        self,
        *instance_ids: str,
        regions: str | None = None,
        tag: str | None = None,
        output: str | None = None,
        config: str | None = None,
        force: bool = False,
    ) -> int | None:
        """Terminate matching instances; only an explicit 'yes' approves.

        Parameters
        ----------
        *instance_ids : str
            Restrict termination to these instance ids
        regions : str | None
            Comma-separated regions to query (default: every enabled region)
        tag : str | None
            Comma-separated Key:Value tag filters
        output : str | None
            Output format: table or json
        config : str | None
            Config file path (default: ~/.ec2ctl.yaml)
        force : bool
            Skip the confirmation prompt
        """
        return self._finish(
            self.lifecycle_manager.terminate(
                instance_ids,
                force=force,
                regions=regions,
                tag=tag,
                output=output,
                config=config,
            )
        )

    def destroy(self, *instance_ids: str, **kwargs: Any) -> int | None:
        """Alias for terminate."""
        return self.terminate(*instance_ids, **kwargs)

    def delete(self, *instance_ids: str, **kwargs: Any) -> int | None:
        """Alias for terminate."""
        return self.terminate(*instance_ids, **kwargs)

    def modify(
        self,
        *instance_ids: str,
        type: str | None = None,
        regions: str | None = None,
        tag: str | None = None,
        output: str | None = None,
        config: str | None = None,
    ) -> int | None:
        """Change the instance type of matching instances after confirmation.

        Parameters
        ----------
        *instance_ids : str
            Restrict the change to these instance ids
        type : str | None
            Target instance type (required)
        regions : str | None
            Comma-separated regions to query (default: every enabled region)
        tag : str | None
            Comma-separated Key:Value tag filters
        output : str | None
            Output format: table or json
        config : str | None
            Config file path (default: ~/.ec2ctl.yaml)
        """
        return self._finish(
            self.lifecycle_manager.modify(
                instance_ids,
                instance_type=type,
                regions=regions,
                tag=tag,
                output=output,
                config=config,
            )
        )


if __name__ == "__main__":
    main()
