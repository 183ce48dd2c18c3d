"""Default configuration parameters for the meal cycle system."""

from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError
from .validation import ConfigValidator

STANDARD_PROFILE_NAME = "standard"
TESTING_PROFILE_NAME = "testing"


@dataclass(frozen=True)
class CycleProfile:
    """Sampling protocol for one meal cycle. Immutable for the cycle's lifetime."""
    name: str
    offsets: tuple[int, ...]                          # Minutes after first bite
    grace_minutes: float                              # Late window after each offset
    early_allowance_minutes: float                    # Early window before each offset
    ceiling_minutes: float                            # Whole-cycle timeout from first bite

    def __post_init__(self) -> None:
        issues = ConfigValidator.validate_profile(self.to_dict())
        if issues:
            raise ConfigurationError(
                f"Invalid cycle profile '{self.name}': "
                + "; ".join(f"{i.field}: {i.message}" for i in issues),
                issues=issues,
            )

    @property
    def last_offset(self) -> int:
        return self.offsets[-1]

    def has_offset(self, offset: int) -> bool:
        return offset in self.offsets

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "offsets": list(self.offsets),
            "grace_minutes": self.grace_minutes,
            "early_allowance_minutes": self.early_allowance_minutes,
            "ceiling_minutes": self.ceiling_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CycleProfile":
        return cls(
            name=data["name"],
            offsets=tuple(data["offsets"]),
            grace_minutes=data["grace_minutes"],
            early_allowance_minutes=data["early_allowance_minutes"],
            ceiling_minutes=data["ceiling_minutes"],
        )


@dataclass(frozen=True)
class ReadingLimits:
    """Plausible glucose range (mg/dL) accepted at the state machine boundary."""
    min_value: float = 20.0
    max_value: float = 600.0


@dataclass(frozen=True)
class SyncParams:
    """Mutation queue parameters."""
    interval_seconds: float = 5.0                     # Periodic flush timer
    db_path: str = "pending_operations.db"
    cycles_collection: str = "mealCycles"
    adhoc_collection: str = "adHocReadings"


@dataclass(frozen=True)
class SchedulerParams:
    """Reading-window scheduler parameters."""
    tick_seconds: float = 1.0
    alert_title: str = "Time to check your glucose!"


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    profile: str
    readings: ReadingLimits
    sync: SyncParams
    scheduler: SchedulerParams


# Single authoritative profile table
BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    STANDARD_PROFILE_NAME: {
        "name": STANDARD_PROFILE_NAME,
        "offsets": [20, 40, 60, 90, 120, 180],
        "grace_minutes": 7,
        "early_allowance_minutes": 7,
        "ceiling_minutes": 190,
    },
    TESTING_PROFILE_NAME: {
        "name": TESTING_PROFILE_NAME,
        "offsets": [5, 10, 15, 20, 25, 30],
        "grace_minutes": 2,
        "early_allowance_minutes": 2,
        "ceiling_minutes": 40,
    },
}


def get_builtin_profile(name: str) -> CycleProfile:
    """Get a built-in cycle profile by name."""
    if name not in BUILTIN_PROFILES:
        raise ConfigurationError(
            f"Unknown cycle profile '{name}'",
            context={"available": sorted(BUILTIN_PROFILES)},
        )
    return CycleProfile.from_dict(BUILTIN_PROFILES[name])


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        profile=STANDARD_PROFILE_NAME,
        readings=ReadingLimits(),
        sync=SyncParams(),
        scheduler=SchedulerParams(),
    )
