# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Servicing configuration module.

This module provides the ConfigLoader class which handles YAML loading,
validation and merging, and the ServicingConfig class which loads and
validates the configuration of a servicing run.
"""

import copy
import os
from typing import Any, Dict, List

import yaml

from ServicingMode.servicing_types import ServicingData

from .bmc_settings import get_driver_names
from .errors import ConfigurationError

DEFAULT_CONFIG: Dict[str, Any] = {
    "connection": {
        "ironic": {
            "verify": True,
            "timeout": 60,
        },
        "bmc": {},
    },
    "settings": {
        "requeue_delay_seconds": 10,
        "unprepared": True,
        "restart_on_failure": False,
        "max_passes": 60,
    },
    "servicing": {},
}


class ConfigLoader:
    """
    Utility class for loading and managing YAML configurations.
    """

    @staticmethod
    def load_config(config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Dict containing the loaded configuration

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            yaml.YAMLError: If the YAML file is invalid
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f)

        # Handle empty files
        if config is None:
            config = {}

        return config

    @staticmethod
    def validate_required_fields(config: Dict[str, Any], required_fields: List[str]) -> None:
        """
        Validate that all required top-level fields are present.

        Raises:
            ConfigurationError: If any required field is missing
        """
        missing_fields = [field for field in required_fields if field not in config]

        if missing_fields:
            raise ConfigurationError(f"Missing required configuration field(s): {', '.join(missing_fields)}")

    @staticmethod
    def validate_nested_fields(config: Dict[str, Any], path: str, required_fields: List[str]) -> None:
        """
        Validate that required fields exist, and are not empty, in a nested configuration path.

        Args:
            config: The configuration dictionary to validate
            path: Dot-separated path to the nested section (e.g., "connection.ironic")
            required_fields: List of required field names at that path

        Raises:
            ConfigurationError: If the path doesn't exist or required fields are missing
        """
        current = config
        path_parts = path.split(".")

        for i, part in enumerate(path_parts):
            if not isinstance(current, dict) or part not in current:
                raise ConfigurationError(f"Configuration path '{'.'.join(path_parts[:i+1])}' not found")
            current = current[part]

        if not isinstance(current, dict):
            raise ConfigurationError(f"Configuration path '{path}' must be a mapping")

        missing_fields = [field for field in required_fields if not current.get(field)]

        if missing_fields:
            raise ConfigurationError(f"Missing required field(s) at '{path}': {', '.join(missing_fields)}")

    @staticmethod
    def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge two configuration dictionaries.

        The override_config values take precedence over base_config values;
        nested dictionaries are merged rather than replaced.
        """

        def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
            result = copy.deepcopy(base)

            for key, value in override.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                else:
                    result[key] = copy.deepcopy(value)

            return result

        return deep_merge(base_config, override_config)


class ServicingConfig:
    """Configuration of a servicing run."""

    def __init__(self, config_path: str = "servicing_config.yaml"):
        """
        Load, merge with defaults and validate the configuration.

        Args:
            config_path (str): Path to the YAML configuration file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If validation fails
        """
        self.config_path = config_path
        self.config = ConfigLoader.merge_configs(DEFAULT_CONFIG, ConfigLoader.load_config(config_path))
        self._validate_config(self.config)

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        Validate configuration for correctness and type safety.

        Raises:
            ConfigurationError: If validation fails
        """
        ConfigLoader.validate_required_fields(config, ["connection", "settings"])
        ConfigLoader.validate_nested_fields(config, "connection.ironic", ["url"])
        ConfigLoader.validate_nested_fields(config, "connection.bmc", ["driver"])
        ConfigLoader.validate_nested_fields(config, "settings", ["node"])

        driver = config["connection"]["bmc"]["driver"]
        if driver not in get_driver_names():
            raise ConfigurationError(
                f"Invalid BMC driver '{driver}'. Driver must be one of: {', '.join(get_driver_names())}"
            )

        ironic = config["connection"]["ironic"]
        timeout = ironic.get("timeout")
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            raise ConfigurationError(
                f"Invalid value for 'timeout' in connection.ironic. Expected positive number, got: {timeout}"
            )

        settings = config["settings"]
        delay = settings.get("requeue_delay_seconds")
        if not isinstance(delay, (int, float)) or isinstance(delay, bool) or delay < 0:
            raise ConfigurationError(
                f"Invalid value for 'requeue_delay_seconds' in settings. Must be a non-negative number, got: {delay}"
            )

        max_passes = settings.get("max_passes")
        if not isinstance(max_passes, int) or isinstance(max_passes, bool) or max_passes < 1:
            raise ConfigurationError(
                f"Invalid value for 'max_passes' in settings. Must be a positive integer, got: {max_passes}"
            )

        for flag in ("unprepared", "restart_on_failure"):
            if not isinstance(settings.get(flag), bool):
                raise ConfigurationError(
                    f"Invalid type for '{flag}' in settings. "
                    f"Expected bool, got {type(settings.get(flag)).__name__}"
                )

        servicing = config.get("servicing") or {}
        if not isinstance(servicing, dict):
            raise ConfigurationError("Invalid 'servicing' section. Expected a mapping")
        for section, expected in (
            ("actual_firmware_settings", dict),
            ("target_firmware_settings", dict),
            ("firmware_config", dict),
            ("target_firmware_components", list),
        ):
            value = servicing.get(section)
            if value is not None and not isinstance(value, expected):
                raise ConfigurationError(
                    f"Invalid type for '{section}' in servicing. "
                    f"Expected {expected.__name__}, got {type(value).__name__}"
                )

    def get_config(self, section: str) -> Dict[str, Any]:
        """
        Get configuration for a specific section.

        Args:
            section (str): Configuration section name

        Returns:
            Dict[str, Any]: Configuration for the specified section
        """
        return self.config.get(section) or {}

    @property
    def node(self) -> str:
        return self.config["settings"]["node"]

    @property
    def bmc_driver(self) -> str:
        return self.config["connection"]["bmc"]["driver"]

    def get_servicing_data(self) -> ServicingData:
        """Build the desired servicing data from the servicing section."""
        return ServicingData.from_dict(self.get_config("servicing"))
