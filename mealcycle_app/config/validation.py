"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ConfigValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_profile(params: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate a cycle profile."""
        errors = []

        offsets = params.get("offsets")
        offsets_valid = False
        if not isinstance(offsets, (list, tuple)) or not offsets:
            errors.append(ConfigValidationError(
                field="offsets",
                message="Must be a non-empty list of minute offsets",
                value=offsets
            ))
        elif not all(isinstance(o, int) and not isinstance(o, bool) and o > 0 for o in offsets):
            errors.append(ConfigValidationError(
                field="offsets",
                message="Offsets must be positive integers",
                value=offsets
            ))
        elif any(b <= a for a, b in zip(offsets, offsets[1:])):
            errors.append(ConfigValidationError(
                field="offsets",
                message="Offsets must be strictly increasing without duplicates",
                value=offsets
            ))
        else:
            offsets_valid = True

        grace = params.get("grace_minutes")
        if not _is_number(grace) or grace <= 0:
            errors.append(ConfigValidationError(
                field="grace_minutes",
                message="Must be a positive number",
                value=grace
            ))

        early = params.get("early_allowance_minutes")
        if not _is_number(early) or early < 0:
            errors.append(ConfigValidationError(
                field="early_allowance_minutes",
                message="Must be a non-negative number",
                value=early
            ))

        ceiling = params.get("ceiling_minutes")
        if not _is_number(ceiling) or ceiling <= 0:
            errors.append(ConfigValidationError(
                field="ceiling_minutes",
                message="Must be a positive number",
                value=ceiling
            ))
        elif offsets_valid and _is_number(grace) and ceiling <= offsets[-1] + grace:
            errors.append(ConfigValidationError(
                field="ceiling_minutes",
                message="Must be greater than the last offset plus grace",
                value=ceiling
            ))

        return errors

    @staticmethod
    def validate_reading_limits(params: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate plausible reading range."""
        errors = []

        min_value = params.get("min_value")
        max_value = params.get("max_value")
        if not _is_number(min_value) or min_value <= 0:
            errors.append(ConfigValidationError(
                field="min_value",
                message="Must be a positive number",
                value=min_value
            ))
        if not _is_number(max_value):
            errors.append(ConfigValidationError(
                field="max_value",
                message="Must be a number",
                value=max_value
            ))
        elif _is_number(min_value) and max_value <= min_value:
            errors.append(ConfigValidationError(
                field="max_value",
                message="Must be greater than min_value",
                value=max_value
            ))

        return errors

    @staticmethod
    def validate_intervals(config: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate timer periods."""
        errors = []

        interval = config.get("sync", {}).get("interval_seconds")
        if interval is not None and (not _is_number(interval) or interval <= 0):
            errors.append(ConfigValidationError(
                field="interval_seconds",
                message="Must be a positive number",
                value=interval
            ))

        tick = config.get("scheduler", {}).get("tick_seconds")
        if tick is not None and (not _is_number(tick) or tick <= 0):
            errors.append(ConfigValidationError(
                field="tick_seconds",
                message="Must be a positive number",
                value=tick
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate complete configuration."""
        errors = []

        for profile in config.get("profiles", {}).values():
            errors.extend(ConfigValidator.validate_profile(profile))

        if "readings" in config:
            errors.extend(ConfigValidator.validate_reading_limits(config["readings"]))

        errors.extend(ConfigValidator.validate_intervals(config))

        return errors
