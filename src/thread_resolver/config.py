"""Runtime settings loaded once at startup."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_LOG_LEVEL = "INFO"
GRAPHQL_URL_ENV_VAR = "GITHUB_GRAPHQL_URL"
TIMEOUT_ENV_VAR = "GITHUB_TIMEOUT_SECONDS"
LOG_LEVEL_ENV_VAR = "THREAD_RESOLVER_LOG_LEVEL"
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")
KNOWN_TOKEN_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_", "github_pat_")


class GitHubAuthError(RuntimeError):
    """Raised when required GitHub authentication is missing."""


class ConfigError(ValueError):
    """Raised when an environment setting has an invalid value."""


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable process configuration shared by the gateway and GraphQL client."""

    token: str = field(repr=False)
    token_source: str
    graphql_url: str = DEFAULT_GRAPHQL_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL


def get_github_token_with_source() -> tuple[str, str]:
    """Read GitHub token and return token value with environment source key."""
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    for env_var in TOKEN_ENV_VARS:
        token = os.getenv(env_var)
        if token:
            return token, env_var

    message = "Missing GitHub token. Set GITHUB_TOKEN (preferred) or GH_TOKEN."
    raise GitHubAuthError(message)


def check_token_format(token: str) -> str | None:
    """Return a warning when the token does not look like a GitHub token."""
    if token.startswith(KNOWN_TOKEN_PREFIXES):
        return None
    return (
        "GitHub token does not start with a recognized prefix "
        f"({', '.join(KNOWN_TOKEN_PREFIXES)}); GitHub will decide whether it is valid."
    )


def _read_timeout_seconds() -> float:
    """Parse the outbound call timeout from the environment."""
    raw_value = os.getenv(TIMEOUT_ENV_VAR)
    if raw_value is None or not raw_value.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout_seconds = float(raw_value)
    except ValueError as error:
        raise ConfigError(f"{TIMEOUT_ENV_VAR} must be a number, got '{raw_value}'.") from error
    if timeout_seconds <= 0:
        raise ConfigError(f"{TIMEOUT_ENV_VAR} must be positive, got '{raw_value}'.")
    return timeout_seconds


def load_settings() -> Settings:
    """Build settings from the process environment and an optional .env file."""
    token, token_source = get_github_token_with_source()
    return Settings(
        token=token,
        token_source=token_source,
        graphql_url=os.getenv(GRAPHQL_URL_ENV_VAR) or DEFAULT_GRAPHQL_URL,
        timeout_seconds=_read_timeout_seconds(),
        log_level=(os.getenv(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper(),
    )
