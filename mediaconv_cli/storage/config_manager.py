"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from mediaconv_cli.exceptions import ConfigurationError
from mediaconv_cli.models.config import ClientConfig

log = logging.getLogger(__name__)

BASE_URL_ENV_VAR = "MEDIACONV_API_BASE_URL"

DEFAULTS = {
    "api_base_url": "",
    "request_timeout": "600",
    "quality": "best",
    "output_format": "mp3",
    "output_dir": ".",
}


def resolve_base_url_from_env(environ: Optional[Mapping[str, str]] = None) -> str:
    """Reads the backend base URL from the environment, if set."""
    environ = os.environ if environ is None else environ
    return environ.get(BASE_URL_ENV_VAR, "").strip()


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(
        self,
        config_file_path: Path,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)
        # Resolved once, at construction
        self._env_base_url = resolve_base_url_from_env(environ)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> ClientConfig:
        """
        Loads configuration from the INI file and the environment, applies CLI
        overrides, and validates it.

        The config file is optional when the base URL comes from the environment.

        Raises:
            ConfigurationError: If the config file is invalid, or validation fails.
        """
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(f"Error parsing configuration file: {e}") from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
        elif not self._env_base_url:
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                f"Run 'mediaconv-cli init <URL>' or set {BASE_URL_ENV_VAR}."
            )

        config_data = self._get_config_as_dict()
        if self._env_base_url:
            config_data["api_base_url"] = self._env_base_url

        if cli_options:
            config_data.update(cli_options)

        try:
            return ClientConfig(
                **config_data, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file, filling unspecified keys
        with defaults.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}
        for key in sorted(ClientConfig.get_ini_keys()):
            value = settings.get(key, DEFAULTS[key])
            config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def get_config_as_dict(self) -> dict[str, Any]:
        """Reads the current INI settings, reading the file if needed."""
        if not self._parser.defaults() and self.config_file_path.is_file():
            self._parser.read(self.config_file_path, encoding="utf-8")
        return self._get_config_as_dict()

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        try:
            request_timeout = section.getfloat(
                "request_timeout", float(DEFAULTS["request_timeout"])
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid request_timeout: {e}") from e
        return {
            "api_base_url": section.get("api_base_url", DEFAULTS["api_base_url"]),
            "request_timeout": request_timeout,
            "quality": section.get("quality", DEFAULTS["quality"]),
            "output_format": section.get("output_format", DEFAULTS["output_format"]),
            "output_dir": section.get("output_dir", DEFAULTS["output_dir"]),
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        needs_saving = False
        config_section = self._parser["DEFAULT"]

        for key in sorted(ClientConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = DEFAULTS[key]
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
