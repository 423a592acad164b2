import os
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_FILE = str(Path.home() / ".myts")
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "myts" / "config.yaml"
DEFAULT_SERVER_PORT = 3210
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_6) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/70.0.3538.77 Safari/537.36"
)


@dataclass(frozen=True)
class Settings:
    """Configuration built once at startup and handed to every component."""

    storage_file: str = DEFAULT_STORAGE_FILE
    host: str = "127.0.0.1"
    port: int = DEFAULT_SERVER_PORT
    use_invidious: bool = False
    threaded: bool = False
    debug: bool = False
    channel_amount_limit: int = 50
    video_amount_limit: int = 48
    videos_per_channel: int = 3
    cooldown_seconds: float = 2.0
    fetch_timeout: float = 10.0
    translation_endpoint: str = "https://feed2json.org/convert"
    instances_url: str = (
        "https://api.invidious.io/instances.json?sort_by=type,health,users"
    )
    user_agent: str = USER_AGENT

    def __post_init__(self):
        for name in (
            "channel_amount_limit",
            "video_amount_limit",
            "videos_per_channel",
            "fetch_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must not be negative")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}")


def _load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load overrides from a YAML file, ignoring it when unusable."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config {config_path}: {e}")
        return {}

    if not isinstance(config, dict):
        logger.error(f"Config {config_path} must be a mapping, ignoring it")
        return {}

    known = {f.name for f in fields(Settings)}
    overrides = {}
    for key, value in config.items():
        if key in known:
            overrides[key] = value
        else:
            logger.warning(f"Unknown config key '{key}' in {config_path}")
    return overrides


def load_settings(config_path: Optional[str] = None, **overrides) -> Settings:
    """Build Settings from defaults, YAML config, environment and CLI overrides.

    Later sources win. ``None`` overrides are skipped so unset CLI options
    leave lower layers untouched.
    """
    settings = Settings()

    if config_path is None:
        config_path = os.getenv("MYTS_CONFIG")
    if config_path is not None:
        path = Path(config_path).expanduser()
        if path.exists():
            settings = replace(settings, **_load_config_file(path))
        else:
            logger.warning(f"Config file not found: {path}")
    elif DEFAULT_CONFIG_FILE.exists():
        settings = replace(settings, **_load_config_file(DEFAULT_CONFIG_FILE))

    env_file = os.getenv("MYTS_FILE")
    if env_file:
        settings = replace(settings, storage_file=env_file)

    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        settings = replace(settings, **overrides)

    return replace(settings, storage_file=str(Path(settings.storage_file).expanduser()))
