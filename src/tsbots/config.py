"""Configuration loader with YAML parsing, env-var interpolation, and Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class QueryServerConfig(BaseModel):
    """Access to the TeamSpeak ServerQuery interface."""

    host: str = "127.0.0.1"
    port: int = 10011
    username: str = "serveradmin"
    password: str = ""
    virtual_server_port: int = 9987
    nickname: str = "TSBots"
    poll_interval: float = Field(default=1.0, gt=0)
    keepalive_interval: float = Field(default=60.0, gt=0)
    max_events_per_poll: int = Field(default=10, ge=1)
    connect_timeout: float = Field(default=10.0, gt=0)


class ControlServiceConfig(BaseModel):
    """The local control socket used to manage the running service."""

    host: str = "127.0.0.1"
    port: int = 12000
    version: str = "1.0.0"
    request_timeout: float = Field(default=1.0, gt=0)


class StorageConfig(BaseModel):
    db_path: str = "./data/tsbots.db"
    table_prefix: str = ""


class AppConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"
    data_dir: str = "./data"
    query: QueryServerConfig = Field(default_factory=QueryServerConfig)
    service: ControlServiceConfig = Field(default_factory=ControlServiceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    bot_types: list[str] = Field(default_factory=lambda: ["GreetingBot", "ChatBot"])
    restart_delay: float = 5.0


_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


def _interpolate_env_vars(text: str, extra: dict[str, str] | None = None) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        if extra and var_name in extra:
            return extra[var_name]
        value = os.environ.get(var_name)
        if value is None:
            return match.group(0)
        return value

    return _ENV_VAR_PATTERN.sub(_replace, text)


def load_config(config_path: str | Path = "config.yaml", env_path: str | Path = ".env") -> AppConfig:
    """Load and validate configuration from YAML file with env-var interpolation."""
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    raw_text = config_file.read_text(encoding="utf-8")

    # data_dir may be referenced by other values, resolve it first
    raw_data = yaml.safe_load(raw_text) or {}
    data_dir = _interpolate_env_vars(str(raw_data.get("data_dir", "./data")))

    interpolated = _interpolate_env_vars(raw_text, extra={"data_dir": data_dir})
    data = yaml.safe_load(interpolated) or {}

    return AppConfig(**data)
