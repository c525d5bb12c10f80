"""Configuration models and loading."""

import json
import os
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "archive-proxy"
CONFIG_FILE = Path(os.environ.get("ARCHIVE_PROXY_CONFIG", CONFIG_DIR / "config.json"))


class ProxySettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = True


class ForwardingSettings(BaseModel):
    """Where requests may be forwarded and how."""

    model_config = ConfigDict(frozen=True)

    allowed_origins: tuple[str, ...] = ("https://v-archive.net", "https://hard-archive.com")
    timeout: float = Field(default=30.0, gt=0)
    collapse_slash_markers: tuple[str, ...] = ("hard-archive.com",)

    @field_validator("allowed_origins")
    @classmethod
    def _origins_are_bare(cls, origins: tuple[str, ...]) -> tuple[str, ...]:
        for origin in origins:
            parts = urlsplit(origin)
            if not parts.scheme or not parts.netloc:
                raise ValueError(f"allowed origin must be absolute: {origin!r}")
            if parts.path or parts.query or parts.fragment:
                raise ValueError(f"allowed origin must not carry a path: {origin!r}")
        return origins


class LimitsSettings(BaseModel):
    max_body_size: int = 10 * 1024 * 1024  # 10MB
    max_connections: int = 100
    max_keepalive_connections: int = 20
    keep_alive_timeout: int = 5


class Config(BaseModel):
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    forwarding: ForwardingSettings = Field(default_factory=ForwardingSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)


def load_config(path: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        path.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(path.read_text())
        return Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        # The allowlist must not silently revert to defaults
        raise ConfigurationError(f"Invalid config at {path}: {e}") from e
