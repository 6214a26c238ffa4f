from pathlib import Path

import pytest

from mediaconv_cli.exceptions import ConfigurationError
from mediaconv_cli.models.config import ClientConfig, get_quality_label
from mediaconv_cli.storage.config_manager import BASE_URL_ENV_VAR, ConfigManager


def test_saved_config_round_trips(tmp_path: Path) -> None:
    config_file = tmp_path / "mediaconv-cli" / "config.ini"
    manager = ConfigManager(config_file, environ={})
    manager.save_new_config({"api_base_url": "https://convert.example.com/"})

    config = ConfigManager(config_file, environ={}).load_config()

    assert config.api_base_url == "https://convert.example.com"
    assert config.quality == "best"
    assert config.output_format == "mp3"
    assert config.request_timeout == 600
    assert config.config_path == str(config_file.parent)


def test_environment_overrides_file(tmp_path: Path) -> None:
    config_file = tmp_path / "config.ini"
    ConfigManager(config_file, environ={}).save_new_config(
        {"api_base_url": "https://file.example.com"}
    )

    manager = ConfigManager(
        config_file, environ={BASE_URL_ENV_VAR: "http://localhost:8000"}
    )

    assert manager.load_config().api_base_url == "http://localhost:8000"


def test_environment_alone_is_enough(tmp_path: Path) -> None:
    manager = ConfigManager(
        tmp_path / "missing.ini", environ={BASE_URL_ENV_VAR: "http://localhost:8000/"}
    )
    config = manager.load_config({"quality": "worst", "output_format": "MP4"})

    assert config.api_base_url == "http://localhost:8000"
    assert config.quality == "worst"
    assert config.output_format == "mp4"


def test_missing_configuration_is_reported(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        ConfigManager(tmp_path / "missing.ini", environ={}).load_config()


def test_invalid_values_become_configuration_errors(tmp_path: Path) -> None:
    manager = ConfigManager(
        tmp_path / "missing.ini", environ={BASE_URL_ENV_VAR: "ftp://nope"}
    )
    with pytest.raises(ConfigurationError):
        manager.load_config()


def test_missing_keys_are_migrated(tmp_path: Path) -> None:
    config_file = tmp_path / "config.ini"
    config_file.write_text("[DEFAULT]\napi_base_url = https://a.example.com\n")

    config = ConfigManager(config_file, environ={}).load_config()

    assert config.output_dir == "."
    assert "output_format = mp3" in config_file.read_text()


@pytest.mark.parametrize(
    "overrides",
    [
        {"quality": "ultra"},
        {"output_format": "flac"},
        {"request_timeout": -1},
        {"simulated_cap": 100},
    ],
)
def test_client_config_rejects_invalid_values(overrides: dict) -> None:
    with pytest.raises(ValueError):
        ClientConfig(api_base_url="http://localhost", **overrides)


def test_quality_labels_depend_on_format() -> None:
    assert get_quality_label("mp3", "best") == "High Quality"
    assert get_quality_label("mp4", "best") == "Best Quality"
    assert get_quality_label("mp4", "ultra") == "Unknown"
