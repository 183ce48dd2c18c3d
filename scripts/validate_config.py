#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mealcycle_app.config.loader import ConfigLoader
from mealcycle_app.config.validation import ConfigValidationError, ConfigValidator
from mealcycle_app.errors import ConfigurationError


def validate_profile_config(loader: ConfigLoader, name: str) -> List[ConfigValidationError]:
    """Validate a single cycle profile from the merged configuration."""
    config = loader.merge_config()
    return ConfigValidator.validate_profile(config["profiles"][name])


def main():
    """Main validation function."""
    print("🔍 Validating meal cycle configuration...")

    loader = ConfigLoader.create()
    config = loader.merge_config()
    all_valid = True

    for name in sorted(config.get("profiles", {})):
        print(f"\n📊 Validating profile '{name}'...")
        errors = validate_profile_config(loader, name)

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            profile = config["profiles"][name]
            print(f"✅ offsets {profile['offsets']}, grace {profile['grace_minutes']}m, "
                  f"ceiling {profile['ceiling_minutes']}m")

    print(f"\n📋 Resolving session settings...")
    try:
        settings = loader.load_settings()
        print(f"✅ Active profile: {settings.profile.name}")
        print(f"✅ Reading range: {settings.readings.min_value}-{settings.readings.max_value} mg/dL")
        print(f"✅ Sync every {settings.sync.interval_seconds}s, queue at {settings.sync.db_path}")
    except ConfigurationError as e:
        print(f"❌ {e}")
        all_valid = False

    if all_valid:
        print(f"\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print(f"\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
