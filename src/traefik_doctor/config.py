"""
Runtime settings for traefik-doctor.

Values come from the environment (optionally populated from a .env file by
the CLI) and can be overridden per invocation by command line options.

Environment:
    PANGOLIN_URL             Control plane base URL
    ENDPOINT                 Dynamic config endpoint path
    TIMEOUT_SECONDS          Total request timeout, body download included
    CONNECT_TIMEOUT_SECONDS  Connect timeout
    BODY_OUT                 Where to save the fetched body
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_URL = "http://pangolin:3001"
DEFAULT_ENDPOINT = "/api/v1/traefik-config"
DEFAULT_TIMEOUT = 20
DEFAULT_CONNECT_TIMEOUT = 5


class ConfigError(Exception):
    """Raised when a setting has an invalid value."""
    pass


def _parse_seconds(name: str, value) -> int:
    """Parse a positive integer number of seconds."""
    if isinstance(value, int) and not isinstance(value, bool):
        seconds = value
    else:
        text = str(value).strip()
        if not (text.isascii() and text.isdigit()):
            raise ConfigError(f"{name} must be an integer, got '{value}'")
        seconds = int(text)

    if seconds <= 0:
        raise ConfigError(f"{name} must be greater than zero")
    return seconds


# Setting name -> environment variable
ENV_VARS = {
    "url": "PANGOLIN_URL",
    "endpoint": "ENDPOINT",
    "timeout": "TIMEOUT_SECONDS",
    "connect_timeout": "CONNECT_TIMEOUT_SECONDS",
    "body_out": "BODY_OUT",
}


@dataclass(frozen=True)
class FetchSettings:
    """Settings for fetching dynamic config from the control plane."""

    url: str = DEFAULT_URL
    endpoint: str = DEFAULT_ENDPOINT
    timeout: int = DEFAULT_TIMEOUT
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    body_out: Optional[str] = None

    @classmethod
    def from_env(cls, **options) -> "FetchSettings":
        """
        Build settings from environment variables and command line options.

        Options that are not None win over the environment. Timeouts are
        validated after that merge, so an invalid environment value that an
        option replaces is never looked at.

        Raises:
            ConfigError: If a timeout is not a positive integer
        """
        unknown = set(options) - set(ENV_VARS)
        if unknown:
            raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")

        values = {}
        sources = {}
        for key, env_var in ENV_VARS.items():
            option = options.get(key)
            if option is not None:
                values[key] = option
                sources[key] = f"--{key.replace('_', '-')}"
            elif os.environ.get(env_var):
                values[key] = os.environ[env_var]
                sources[key] = env_var

        for key in ("timeout", "connect_timeout"):
            if key in values:
                values[key] = _parse_seconds(sources[key], values[key])

        return cls(**values)
