"""Tests for config loading and environment overrides."""

import pytest

from climate_mirror.config import AppConfig, apply_env_overrides, load_config
from climate_mirror.models import FatalError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CATALOG", "METADATA", "DATA_DIR", "LOG_DIR", "WORKERS", "TIMEOUT"):
        monkeypatch.delenv(f"CLIMATE_MIRROR_{name}", raising=False)


def test_missing_file_gives_defaults(tmp_path) -> None:
    config = load_config(str(tmp_path / "mirror.yaml"))
    assert config.catalog_path == "data-sources.yaml"
    assert config.metadata_path == ".metadata.yaml"
    assert config.download.max_parallel == 16


def test_reads_yaml_and_ignores_unknown_keys(tmp_path) -> None:
    path = tmp_path / "mirror.yaml"
    path.write_text(
        "catalog_path: sources.yaml\n"
        "log_dir: logs\n"
        "download:\n"
        "  max_parallel: 4\n"
        "  timeout: 30\n"
        "  retries: 9\n"
    )
    config = load_config(str(path))
    assert config.catalog_path == "sources.yaml"
    assert config.log_dir == "logs"
    assert config.download.max_parallel == 4
    assert config.download.timeout == 30


def test_malformed_file_is_fatal(tmp_path) -> None:
    path = tmp_path / "mirror.yaml"
    path.write_text("download: [oops\n")
    with pytest.raises(FatalError):
        load_config(str(path))


def test_zero_workers_is_fatal(tmp_path) -> None:
    path = tmp_path / "mirror.yaml"
    path.write_text("download:\n  max_parallel: 0\n")
    with pytest.raises(FatalError):
        load_config(str(path))


def test_environment_overrides_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "mirror.yaml"
    path.write_text("data_dir: from-file\ndownload:\n  max_parallel: 4\n")
    monkeypatch.setenv("CLIMATE_MIRROR_DATA_DIR", "from-env")
    monkeypatch.setenv("CLIMATE_MIRROR_WORKERS", "8")

    config = load_config(str(path))
    assert config.data_dir == "from-env"
    assert config.download.max_parallel == 8


@pytest.mark.parametrize("value", ["many", "0"])
def test_bad_worker_override_is_fatal(value) -> None:
    with pytest.raises(FatalError):
        apply_env_overrides(AppConfig(), {"CLIMATE_MIRROR_WORKERS": value})


def test_download_must_be_a_mapping(tmp_path) -> None:
    path = tmp_path / "mirror.yaml"
    path.write_text("download: [1]\n")
    with pytest.raises(FatalError):
        load_config(str(path))


def test_numeric_strings_are_converted(tmp_path) -> None:
    path = tmp_path / "mirror.yaml"
    path.write_text("download:\n  max_parallel: '4'\n  timeout: '60'\n")
    config = load_config(str(path))
    assert config.download.max_parallel == 4
    assert config.download.timeout == 60


@pytest.mark.parametrize("text", [
    "download:\n  max_parallel: four\n",
    "download:\n  chunk_size: [65536]\n",
])
def test_non_integer_download_fields_are_fatal(tmp_path, text) -> None:
    path = tmp_path / "mirror.yaml"
    path.write_text(text)
    with pytest.raises(FatalError):
        load_config(str(path))
