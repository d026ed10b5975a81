#!/usr/bin/env python3
"""
File: local_config.py
Author: Bastian Cerf
Date: 15/08/2025
Description:
    Read, parse and validate the local configuration file
    `local_config.ini` against its schema under
    `assets/config/local_config_schema.json`.

    The configuration is loaded once at startup by the bootstrap and
    injected into the services that need it.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
from os.path import join
from types import MappingProxyType
from typing import Any, Optional

# Internal libraries
from common.config_parser import ConfigParser

logger = logging.getLogger(__name__)

SCHEMA_FILE_PATH = join("assets", "config", "local_config_schema.json")
CONFIG_FILE_PATH = join("local_config.ini")


class LocalConfig:
    """
    Application configuration data, read-only except for `persist()`.
    """

    def __init__(
        self, path: Optional[str] = None, schema_path: str = SCHEMA_FILE_PATH
    ):
        """
        Load and validate the configuration. A default file is created if
        none exists at `path`.

        Args:
            path (Optional[str]): Configuration file path, defaults to
                `CONFIG_FILE_PATH`.
            schema_path (str): Schema file path.

        Raises:
            ConfigError: Invalid configuration or schema.
        """
        self._config_path = path or CONFIG_FILE_PATH
        self._config = ConfigParser(schema_path, self._config_path, gen_default=True)
        self._view = self._config.get_view()

    @property
    def path(self) -> str:
        return self._config_path

    def section(self, section: str) -> MappingProxyType[str, Any]:
        """
        Returns:
            MappingProxyType: A read-only view on a data section.
        """
        return self._view[section]

    def persist(self, section: str, key: str, value: Any):
        """
        Persist a value in the local configuration.
        """
        self._config.set_value(section, key, value)

    def show_config(self):
        """
        Log the local configuration in use, section by section.
        """
        logger.info(f"Using local configuration '{self._config_path}'.")
        for section, values in self._view.items():
            logger.info(f"Section [{section}] = {dict(values)}")
