"""Configuration loading with YAML security and environment overrides."""
import os
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .models import ArtifactMode, CategoryPath, RunConfig

ZIP_PATTERN = re.compile(r"^\d{5}$")

# Environment variable -> settings key
ENV_OVERRIDES = {
    "BASE_URL": "base_url",
    "ZIP": "zip_code",
    "PRICE_THRESHOLD": "price_threshold",
    "HEADLESS": "headless",
    "DEBUG_PAUSE": "debug_pause",
}

_FALSE_VALUES = {"0", "false", "no", "off"}


def load_config_secure(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration with security hardening.

    CRITICAL: Uses safe_load() to prevent code execution attacks.
    Never use yaml.load() without a SafeLoader.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Dictionary containing the configuration.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config is not a valid dictionary.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        # CRITICAL: Use safe_load() - never yaml.load()
        config = yaml.safe_load(f)

    if not isinstance(config, dict):
        raise ValueError("Configuration must be a dictionary")

    return config


def default_settings() -> dict[str, Any]:
    """Documented defaults, mirrored in config/settings.yaml."""
    return {
        "base_url": "https://www.amazon.com",
        "zip_code": "10001",
        "price_threshold": 100,
        "headless": True,
        "action_timeout_ms": 2000,
        "navigation_timeout_ms": 5000,
        "expect_timeout_ms": 8000,
        "location_update_timeout_ms": 20000,
        "click_attempts": 3,
        "scenario_retries": 1,
        "output_dir": "output",
        "debug_pause": False,
        "category": {
            "department": CategoryPath.department,
            "subcategory": CategoryPath.subcategory,
            "heading": CategoryPath.heading,
            "url_hint": CategoryPath.url_hint,
        },
        "artifacts": {
            "dir": "debug",
            "trace": "retain-on-failure",
            "video": "retain-on-failure",
            "max_age_hours": 24,
        },
    }


def load_settings(config_path: Path) -> dict[str, Any]:
    """Load settings configuration from YAML file.

    Args:
        config_path: Path to the settings YAML file.

    Returns:
        Dictionary containing settings with defaults applied.
    """
    config = load_config_secure(config_path)

    for key, value in default_settings().items():
        if isinstance(value, dict):
            section = config.get(key) or {}
            if not isinstance(section, dict):
                raise ValueError(f"'{key}' must be a mapping")
            config[key] = {**value, **section}
        else:
            config.setdefault(key, value)

    return config


def apply_env_overrides(
    settings: dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> dict[str, Any]:
    """Overlay environment variables onto settings.

    Args:
        settings: Settings dictionary (not modified).
        environ: Environment mapping (default: os.environ).

    Returns:
        New settings dictionary with overrides applied.
    """
    environ = os.environ if environ is None else environ
    merged = dict(settings)
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is not None and value.strip():
            merged[key] = value.strip()
    return merged


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_VALUES
    return bool(value)


def _as_threshold(value: Any) -> Decimal:
    try:
        threshold = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"price_threshold must be a number, got {value!r}") from None
    if not threshold.is_finite() or threshold < 0:
        raise ValueError(f"price_threshold must be a non-negative number, got {value!r}")
    return threshold


def build_run_config(settings: Mapping[str, Any]) -> RunConfig:
    """Validate a settings dictionary and freeze it into a RunConfig.

    Raises:
        ValueError: If a value is missing or invalid.
    """
    merged = {**default_settings(), **settings}

    zip_code = str(merged["zip_code"]).strip()
    if not ZIP_PATTERN.match(zip_code):
        raise ValueError(f"zip_code must be a 5-digit US ZIP code, got {zip_code!r}")

    base_url = str(merged["base_url"]).strip().rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        raise ValueError(f"base_url must be an http(s) URL, got {base_url!r}")

    category = {**default_settings()["category"], **(merged.get("category") or {})}
    artifacts = {**default_settings()["artifacts"], **(merged.get("artifacts") or {})}

    try:
        return RunConfig(
            base_url=base_url,
            zip_code=zip_code,
            price_threshold=_as_threshold(merged["price_threshold"]),
            headless=_as_bool(merged["headless"]),
            action_timeout_ms=int(merged["action_timeout_ms"]),
            navigation_timeout_ms=int(merged["navigation_timeout_ms"]),
            expect_timeout_ms=int(merged["expect_timeout_ms"]),
            location_update_timeout_ms=int(merged["location_update_timeout_ms"]),
            click_attempts=int(merged["click_attempts"]),
            scenario_retries=int(merged["scenario_retries"]),
            category=CategoryPath(
                department=str(category["department"]),
                subcategory=str(category["subcategory"]),
                heading=str(category["heading"]),
                url_hint=str(category["url_hint"]),
            ),
            artifacts_dir=Path(artifacts["dir"]),
            trace_mode=ArtifactMode(str(artifacts["trace"])),
            video_mode=ArtifactMode(str(artifacts["video"])),
            artifacts_max_age_hours=int(artifacts["max_age_hours"]),
            output_dir=Path(merged["output_dir"]),
            debug_pause=_as_bool(merged["debug_pause"]),
        )
    except (TypeError, KeyError) as e:
        raise ValueError(f"Invalid settings: {e}") from e


def load_run_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RunConfig:
    """Resolve the run configuration: file, then environment, then overrides.

    Args:
        config_path: Optional settings YAML; defaults are used when omitted
            or when the file does not exist.
        environ: Environment mapping (default: os.environ).
        overrides: Explicit values (e.g. CLI flags); None values are ignored.

    Returns:
        Validated RunConfig.
    """
    if config_path is not None and config_path.exists():
        settings = load_settings(config_path)
    else:
        settings = default_settings()

    settings = apply_env_overrides(settings, environ)
    for key, value in (overrides or {}).items():
        if value is not None:
            settings[key] = value

    return build_run_config(settings)
