"""
Environment variable helpers for modules.

Modules call these from ``check_environment`` so a missing variable is
reported alongside every other module's problems at startup.
"""

import os
from collections.abc import Iterable

from .exceptions import MissingVariablesError


def check_variables(names: Iterable[str]) -> None:
    """
    Ensure every named environment variable is set and non-empty.

    Raises:
        MissingVariablesError: Listing every variable that is missing.
    """
    missing = [name for name in names if not os.getenv(name)]
    if missing:
        raise MissingVariablesError(missing)


def make_env(names: Iterable[str]) -> dict[str, str]:
    """
    Validate and collect the named environment variables.

    Example:
        env = make_env(["DATABASE_URL", "JWT_SECRET"])
        app = Application(env=env)
    """
    names = list(names)
    check_variables(names)
    return {name: os.environ[name] for name in names}
