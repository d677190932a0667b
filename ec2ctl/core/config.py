import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from ec2ctl.constants import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_OUTPUT,
    DEFAULT_REGION,
    OUTPUT_FORMATS,
    Action,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandRequest:
    """Everything one command invocation needs, built once and passed down."""

    action: Action
    regions: tuple[str, ...] = ()
    tag_filters: dict[str, str] = field(default_factory=dict)
    instance_ids: tuple[str, ...] = ()
    instance_type: str | None = None
    output: str = DEFAULT_OUTPUT
    force: bool = False


class ConfigLoader:
    """Load YAML configuration and merge it with defaults and CLI overrides."""

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS = {
            "default_region": os.environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
            "regions": [],
            "tags": {},
            "output": DEFAULT_OUTPUT,
            "max_workers": None,
            "region_timeout": None,
        }

    def default_config_path(self) -> Path:
        config_path = os.environ.get("EC2CTL_CONFIG")
        if config_path:
            return Path(config_path)
        return Path.home() / DEFAULT_CONFIG_FILENAME

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks EC2CTL_CONFIG env var,
            then falls back to ~/.ec2ctl.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with all variable interpolations resolved;
            empty when no file exists

        Raises
        ------
        ValueError
            If the file is not valid YAML, is not a mapping, or references
            undefined variables
        RuntimeError
            If the file exists but cannot be read
        """
        config_file = Path(config_path) if config_path else self.default_config_path()

        if not config_file.exists():
            if config_path:
                raise ValueError(f"Config file not found: {config_file}")
            return {}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ValueError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {}

        if not OmegaConf.is_dict(cfg):
            raise ValueError(f"Config file {config_file} must contain a mapping")

        var_keys = []
        if "vars" in cfg:
            vars_dict = OmegaConf.to_container(cfg.vars, resolve=False)
            for key, value in vars_dict.items():
                if key not in cfg:
                    cfg[key] = value
                    var_keys.append(key)

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ValueError(f"Configuration variable resolution error: {e}") from e
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ValueError(f"Configuration variable resolution error: {e}") from e

        config.pop("vars", None)
        for key in var_keys:
            config.pop(key, None)
        logger.debug("Using config file: %s", config_file)
        return config

    def get_settings(
        self, config: dict[str, Any], overrides: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Merge built-in defaults, file configuration and CLI overrides.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration from YAML
        overrides : dict[str, Any] | None
            CLI values; None entries leave the lower layers untouched

        Returns
        -------
        dict[str, Any]
            Validated settings
        """
        merged = copy.deepcopy(self.BUILT_IN_DEFAULTS)

        for key, value in config.items():
            merged[key] = value

        for key, value in (overrides or {}).items():
            if value is not None:
                merged[key] = value

        self.validate_config(merged)
        return merged

    def validate_config(self, config: dict[str, Any]) -> None:
        """Validate configuration has correct types.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration to validate

        Raises
        ------
        ValueError
            If configuration is invalid
        """
        if not isinstance(config.get("default_region"), str) or not config["default_region"]:
            raise ValueError("default_region must be a non-empty string")

        regions = config.get("regions")
        if not isinstance(regions, list) or not all(isinstance(r, str) for r in regions):
            raise ValueError("regions must be a list of strings")

        tags = config.get("tags")
        if not isinstance(tags, dict):
            raise ValueError("tags must be a mapping of tag key to value")
        for key, value in tags.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValueError("tags keys and values must be strings")

        if config.get("output") not in OUTPUT_FORMATS:
            raise ValueError(
                f"output must be one of {', '.join(OUTPUT_FORMATS)}, got '{config.get('output')}'"
            )

        max_workers = config.get("max_workers")
        if max_workers is not None and (
            not isinstance(max_workers, int) or isinstance(max_workers, bool) or max_workers < 1
        ):
            raise ValueError("max_workers must be a positive integer")

        region_timeout = config.get("region_timeout")
        if region_timeout is not None and (
            not isinstance(region_timeout, (int, float))
            or isinstance(region_timeout, bool)
            or region_timeout <= 0
        ):
            raise ValueError("region_timeout must be a positive number of seconds")
