"""Utility helper functions shared by both services."""

import os


def env_flag(name: str, default: bool) -> bool:
    """
    Read a boolean flag from the environment.

    Args:
        name: Environment variable name
        default: Value when the variable is unset

    Returns:
        True for 1/true/yes/on (case-insensitive), False for anything else
    """
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')
