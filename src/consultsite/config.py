"""Unified configuration loaded from .consultsite.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from datetime import timedelta
from pathlib import Path

from consultsite.content.projection import ImageSizes
from consultsite.integrations.sanity import SanityConfig
from consultsite.integrations.web3forms import DEFAULT_ENDPOINT, RelayConfig
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".consultsite.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "consultsite" / "config.toml"


class SanitySectionConfig(BaseModel):
    """[sanity] section."""

    project_id: str = ""
    dataset: str = "production"
    api_version: str = "2024-01-01"
    use_cdn: bool = False
    token: str = ""
    timeout: float = 10.0


class CacheSectionConfig(BaseModel):
    """[cache] section."""

    freshness_seconds: int = 300

    @property
    def freshness(self) -> timedelta:
        return timedelta(seconds=self.freshness_seconds)


class RelaySectionConfig(BaseModel):
    """[relay] section."""

    access_key: str = ""
    endpoint: str = DEFAULT_ENDPOINT
    to_email: str = ""
    from_name: str = "Blackbox Logic Website"
    subject: str = "New Contact Form Submission"
    timeout: float = 10.0


class ContactSectionConfig(BaseModel):
    """[contact] section."""

    store: str = "memory"  # "memory" or "json"
    directory: str = "./data"


class ApiSectionConfig(BaseModel):
    """[api] section."""

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    admin_token: str = ""
    host: str = "127.0.0.1"
    port: int = 8000


class SiteConfig(BaseModel):
    """Top-level configuration model for the site backend."""

    sanity: SanitySectionConfig = Field(default_factory=SanitySectionConfig)
    cache: CacheSectionConfig = Field(default_factory=CacheSectionConfig)
    relay: RelaySectionConfig = Field(default_factory=RelaySectionConfig)
    contact: ContactSectionConfig = Field(default_factory=ContactSectionConfig)
    api: ApiSectionConfig = Field(default_factory=ApiSectionConfig)
    images: ImageSizes = Field(default_factory=ImageSizes)

    def to_sanity_config(self) -> SanityConfig:
        """Convert to SanityConfig for the document store client."""
        return SanityConfig(**self.sanity.model_dump())

    def to_relay_config(self) -> RelayConfig:
        """Convert to RelayConfig for the notification relay."""
        return RelayConfig(**self.relay.model_dump())


def load_config(path: str | Path | None = None) -> SiteConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .consultsite.toml in CWD
    3. ~/.config/consultsite/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged SiteConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    config = SiteConfig.model_validate(data) if data else SiteConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: SiteConfig, **cli_kwargs: object) -> SiteConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "project_id": ("sanity", "project_id"),
        "dataset": ("sanity", "dataset"),
        "store": ("contact", "store"),
        "data_dir": ("contact", "directory"),
        "host": ("api", "host"),
        "port": ("api", "port"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return SiteConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: SiteConfig) -> SiteConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "SANITY_PROJECT_ID": ("sanity", "project_id"),
        "SANITY_DATASET": ("sanity", "dataset"),
        "SANITY_API_VERSION": ("sanity", "api_version"),
        "SANITY_TOKEN": ("sanity", "token"),
        "WEB3FORMS_ACCESS_KEY": ("relay", "access_key"),
        "CONSULTSITE_TO_EMAIL": ("relay", "to_email"),
        "CONSULTSITE_ADMIN_TOKEN": ("api", "admin_token"),
        "CONSULTSITE_STORE": ("contact", "store"),
        "CONSULTSITE_DATA_DIR": ("contact", "directory"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    # Non-string types
    cdn_raw = os.environ.get("SANITY_USE_CDN")
    if cdn_raw is not None:
        data["sanity"]["use_cdn"] = cdn_raw.lower() in ("true", "1", "yes")
    cache_raw = os.environ.get("CONSULTSITE_CACHE_SECONDS")
    if cache_raw is not None:
        data["cache"]["freshness_seconds"] = int(cache_raw)
    origins_raw = os.environ.get("CONSULTSITE_CORS_ORIGINS")
    if origins_raw is not None:
        data["api"]["cors_origins"] = [o.strip() for o in origins_raw.split(",") if o.strip()]

    return SiteConfig.model_validate(data)
