# src/config.py
"""Configuration management for Okkake.

Environment-based configuration with type-safe getters and defaults.
These functions take an env object and return configuration values.
"""

from datetime import timedelta
from typing import Any

from freshness import FreshnessPolicy
from utils import log_op

# =============================================================================
# Constants
# =============================================================================

# Timeouts
HTTP_TIMEOUT_SECONDS = 30  # HTTP request timeout

# User agent for novel page fetching
USER_AGENT = "Okkake/1.0 (+https://okkake.shuttleapp.rs)"

# Site defaults
DEFAULT_SITE_NAME = "Okkake"
DEFAULT_PUBLIC_URL = "https://okkake.shuttleapp.rs"

# Feeds change at most once a day per start time
DEFAULT_FEED_CACHE_MAX_AGE = 600

# Freshness windows (hours)
DEFAULT_FORCE_REFRESH_HOURS = 24
DEFAULT_RANDOM_REFRESH_HOURS = 12
DEFAULT_FORCE_REFRESH_ERROR_HOURS = 2
DEFAULT_RANDOM_REFRESH_ERROR_HOURS = 1


# =============================================================================
# Configuration Getters
# =============================================================================


def get_config_value(
    env: Any,
    env_key: str,
    default: int | float,
    value_type: type[int] | type[float] = int,
) -> int | float:
    """Get a positive configuration value from environment with type conversion.

    Args:
        env: The Worker environment object
        env_key: The environment variable name
        default: Default value if not set, invalid, or not positive
        value_type: Type to convert to (int or float)

    Returns:
        The configured value or default.
    """
    value = getattr(env, env_key, None)
    if not value:
        return default
    try:
        converted = value_type(value)
    except (ValueError, TypeError) as e:
        log_op(
            "config_validation_error",
            config_key=env_key,
            error=str(e),
        )
        return default
    if converted <= 0:
        log_op(
            "config_validation_error",
            config_key=env_key,
            error=f"must be positive, got {converted}",
        )
        return default
    return converted


def get_site_config(env: Any) -> dict[str, str]:
    """Get site configuration from environment.

    Returns:
        Dict with name and url (without trailing slash).
    """
    url = getattr(env, "PUBLIC_URL", None) or DEFAULT_PUBLIC_URL
    return {
        "name": getattr(env, "SITE_NAME", None) or DEFAULT_SITE_NAME,
        "url": url.rstrip("/"),
    }


def get_user_agent(env: Any) -> str:
    """Get the User-Agent sent to syosetu."""
    return getattr(env, "USER_AGENT", None) or USER_AGENT


# =============================================================================
# Config Registry
# =============================================================================

# Registry of integer config values: (env_key, default_value)
_INT_CONFIG_REGISTRY: dict[str, tuple[str, int]] = {
    "http_timeout": ("HTTP_TIMEOUT", HTTP_TIMEOUT_SECONDS),
    "feed_cache_max_age": ("FEED_CACHE_MAX_AGE", DEFAULT_FEED_CACHE_MAX_AGE),
    "force_refresh_hours": ("FORCE_REFRESH_HOURS", DEFAULT_FORCE_REFRESH_HOURS),
    "random_refresh_hours": ("RANDOM_REFRESH_HOURS", DEFAULT_RANDOM_REFRESH_HOURS),
    "force_refresh_error_hours": (
        "FORCE_REFRESH_ERROR_HOURS",
        DEFAULT_FORCE_REFRESH_ERROR_HOURS,
    ),
    "random_refresh_error_hours": (
        "RANDOM_REFRESH_ERROR_HOURS",
        DEFAULT_RANDOM_REFRESH_ERROR_HOURS,
    ),
}


def _get_int_config(env: Any, config_name: str) -> int:
    """Get an integer config value from the registry."""
    env_key, default = _INT_CONFIG_REGISTRY[config_name]
    return int(get_config_value(env, env_key, default))


def get_http_timeout(env: Any) -> int:
    """Get HTTP request timeout in seconds."""
    return _get_int_config(env, "http_timeout")


def get_feed_cache_max_age(env: Any) -> int:
    """Get Cache-Control max-age for feed responses in seconds."""
    return _get_int_config(env, "feed_cache_max_age")


def get_freshness_policy(env: Any) -> FreshnessPolicy:
    """Build the cache freshness windows from environment overrides."""
    policy = FreshnessPolicy(
        force_refresh=timedelta(hours=_get_int_config(env, "force_refresh_hours")),
        random_refresh=timedelta(hours=_get_int_config(env, "random_refresh_hours")),
        force_refresh_error=timedelta(hours=_get_int_config(env, "force_refresh_error_hours")),
        random_refresh_error=timedelta(hours=_get_int_config(env, "random_refresh_error_hours")),
    )
    if policy.random_refresh > policy.force_refresh or (
        policy.random_refresh_error > policy.force_refresh_error
    ):
        log_op("config_validation_error", config_key="refresh_hours", error="inverted window")
        return FreshnessPolicy()
    return policy
