"""
Configuration module.

Cycle profiles, reading limits and timer settings, loaded with defaults <
settings.yaml < explicit overrides precedence.
"""
