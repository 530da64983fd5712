"""YAML config loader with environment overrides."""

import os
from dataclasses import dataclass, field
from typing import Optional

import yaml

from .models import FatalError

ENV_PREFIX = "CLIMATE_MIRROR_"


@dataclass
class DownloadConfig:
    timeout: int = 120
    connect_timeout: int = 30
    max_parallel: int = 16
    chunk_size: int = 65536
    user_agent: str = "ClimateMirror/1.0"


@dataclass
class AppConfig:
    catalog_path: str = "data-sources.yaml"
    metadata_path: str = ".metadata.yaml"
    data_dir: str = "."
    log_dir: str = ""
    download: DownloadConfig = field(default_factory=DownloadConfig)


def load_config(config_path: Optional[str] = "mirror.yaml") -> AppConfig:
    """Build an AppConfig from the config file (if present) and the environment.

    A missing config file means defaults; a malformed one is fatal.
    """
    raw = {}
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path) as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise FatalError(f"Failed to parse {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise FatalError(f"Failed to parse {config_path}: expected a mapping")

    dl_raw = raw.get("download") or {}
    if not isinstance(dl_raw, dict):
        raise FatalError(f"Failed to parse {config_path}: download must be a mapping")
    download = DownloadConfig(**{k: v for k, v in dl_raw.items() if k in DownloadConfig.__dataclass_fields__})
    for name in ("timeout", "connect_timeout", "max_parallel", "chunk_size"):
        value = getattr(download, name)
        try:
            setattr(download, name, int(value))
        except (TypeError, ValueError) as e:
            raise FatalError(f"Failed to parse {config_path}: download.{name}={value!r} is not an integer") from e

    config = AppConfig(
        catalog_path=raw.get("catalog_path", "data-sources.yaml"),
        metadata_path=raw.get("metadata_path", ".metadata.yaml"),
        data_dir=raw.get("data_dir", "."),
        log_dir=raw.get("log_dir", ""),
        download=download,
    )
    apply_env_overrides(config)
    if config.download.max_parallel < 1:
        raise FatalError(f"download.max_parallel must be at least 1, got {config.download.max_parallel}")
    return config


def apply_env_overrides(config: AppConfig, environ=None):
    env = os.environ if environ is None else environ

    for name, attr in (("CATALOG", "catalog_path"), ("METADATA", "metadata_path"),
                       ("DATA_DIR", "data_dir"), ("LOG_DIR", "log_dir")):
        value = env.get(ENV_PREFIX + name)
        if value:
            setattr(config, attr, value)

    for name, attr in (("WORKERS", "max_parallel"), ("TIMEOUT", "timeout")):
        value = env.get(ENV_PREFIX + name)
        if value:
            try:
                number = int(value)
            except ValueError as e:
                raise FatalError(f"Invalid {ENV_PREFIX + name}={value!r}: expected an integer") from e
            if number < 1:
                raise FatalError(f"Invalid {ENV_PREFIX + name}={value!r}: must be at least 1")
            setattr(config.download, attr, number)
