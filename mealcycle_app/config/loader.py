"""Configuration loader with 3-tier parameter precedence."""

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import (
    BUILTIN_PROFILES,
    CycleProfile,
    DefaultConfig,
    ReadingLimits,
    SchedulerParams,
    SyncParams,
    get_default_config,
)
from .validation import ConfigValidator

PROFILE_ENV_VAR = "MEALCYCLE_PROFILE"
SETTINGS_FILE = "settings.yaml"


@dataclass(frozen=True)
class AppSettings:
    """Resolved settings for one session."""
    profile: CycleProfile
    readings: ReadingLimits
    sync: SyncParams
    scheduler: SchedulerParams


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig
    environ: Mapping[str, str]

    @classmethod
    def create(
        cls,
        config_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
            environ=os.environ if environ is None else environ,
        )

    def load_settings_file(self) -> dict[str, Any]:
        """Load overrides from settings.yaml, if present."""
        settings_file = self.config_dir / SETTINGS_FILE

        if not settings_file.exists():
            return {}

        with open(settings_file) as f:
            settings = yaml.safe_load(f)

        if settings is None:
            return {}
        if not isinstance(settings, dict):
            raise ConfigurationError(
                f"{settings_file} must contain a mapping",
                context={"path": str(settings_file)},
            )
        return settings

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. settings.yaml in the config directory
        3. Built-in defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config["profiles"] = copy.deepcopy(BUILTIN_PROFILES)

        config = self._deep_merge(config, self.load_settings_file())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def resolve_profile_name(self, config: dict[str, Any]) -> str:
        """Environment variable wins over the configured profile name."""
        return self.environ.get(PROFILE_ENV_VAR) or config.get("profile") or self.defaults.profile

    def load_profile(
        self,
        name: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None
    ) -> CycleProfile:
        """Resolve and build a single cycle profile."""
        config = self.merge_config(overrides)
        return self._build_profile(config, name or self.resolve_profile_name(config))

    def load_settings(self, overrides: Optional[dict[str, Any]] = None) -> AppSettings:
        """Resolve the full settings for a session, validating everything."""
        config = self.merge_config(overrides)

        errors = ConfigValidator.validate_config(config)
        if errors:
            raise ConfigurationError(
                "Configuration validation failed: "
                + "; ".join(f"{err.field}: {err.message} (got: {err.value})" for err in errors),
                issues=errors,
            )

        return AppSettings(
            profile=self._build_profile(config, self.resolve_profile_name(config)),
            readings=ReadingLimits(**config["readings"]),
            sync=SyncParams(**config["sync"]),
            scheduler=SchedulerParams(**config["scheduler"]),
        )

    def _build_profile(self, config: dict[str, Any], name: str) -> CycleProfile:
        profiles = config.get("profiles", {})
        if name not in profiles:
            raise ConfigurationError(
                f"Unknown cycle profile '{name}'",
                context={"available": sorted(profiles)},
            )
        data = dict(profiles[name])
        data["name"] = name
        return CycleProfile.from_dict(data)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
