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
Unit tests for servicing configuration loading and validation.

Use the following command to run the tests:
python3 -m pytest ServicingMode/TestFiles/core/test_configuration_management.py -v
"""

import copy
import shutil
import tempfile
import unittest
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from ServicingMode.servicing_types import FirmwareConfig
from ServicingMode.ServicingFunctions.config_utils import ConfigLoader, ServicingConfig
from ServicingMode.ServicingFunctions.errors import ConfigurationError

pytestmark = pytest.mark.core

SAMPLE_CONFIG: Dict[str, Any] = {
    "connection": {
        "ironic": {
            "url": "https://ironic.example:6385",
            "username": "admin",
            "password": "password",
            "verify": False,
        },
        "bmc": {"driver": "ilo5"},
    },
    "settings": {
        "node": "worker-0",
        "requeue_delay_seconds": 5,
        "restart_on_failure": True,
    },
    "servicing": {
        "target_firmware_settings": {"NumLock": "Off"},
        "firmware_config": {"virtualization_enabled": True},
        "target_firmware_components": [{"component": "bmc", "url": "http://fw.example/bmc.bin"}],
        "servicing_triggered_by_components": True,
    },
}


class TestServicingConfig(unittest.TestCase):
    """Test cases for ServicingConfig class."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.config_path = Path(self.test_dir) / "servicing_config.yaml"

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def _write_config_file(self, config_data: Dict[str, Any]):
        with open(self.config_path, "w") as f:
            yaml.dump(config_data, f)

    def _config_with(self, section: str, key: str, value: Any) -> Dict[str, Any]:
        config_data = copy.deepcopy(SAMPLE_CONFIG)
        config_data[section][key] = value
        return config_data

    def test_valid_file_merges_defaults(self):
        self._write_config_file(SAMPLE_CONFIG)

        config = ServicingConfig(str(self.config_path))

        self.assertEqual(config.node, "worker-0")
        self.assertEqual(config.bmc_driver, "ilo5")
        settings = config.get_config("settings")
        self.assertEqual(settings["requeue_delay_seconds"], 5)
        self.assertTrue(settings["restart_on_failure"])
        # Defaults fill in what the file leaves out
        self.assertTrue(settings["unprepared"])
        self.assertEqual(settings["max_passes"], 60)
        self.assertEqual(config.get_config("connection")["ironic"]["timeout"], 60)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ServicingConfig(str(Path(self.test_dir) / "nonexistent.yaml"))

    def test_invalid_yaml(self):
        with open(self.config_path, "w") as f:
            f.write("invalid: yaml: content: [unclosed")

        with self.assertRaises(yaml.YAMLError):
            ServicingConfig(str(self.config_path))

    def test_empty_file_is_missing_required_fields(self):
        self.config_path.write_text("")

        with self.assertRaises(ConfigurationError) as ctx:
            ServicingConfig(str(self.config_path))
        self.assertIn("connection.ironic", str(ctx.exception))

    def test_missing_node(self):
        config_data = copy.deepcopy(SAMPLE_CONFIG)
        del config_data["settings"]["node"]
        self._write_config_file(config_data)

        with self.assertRaises(ConfigurationError) as ctx:
            ServicingConfig(str(self.config_path))
        self.assertIn("node", str(ctx.exception))

    def test_unknown_driver(self):
        config_data = copy.deepcopy(SAMPLE_CONFIG)
        config_data["connection"]["bmc"]["driver"] = "ipmi"
        self._write_config_file(config_data)

        with self.assertRaises(ConfigurationError) as ctx:
            ServicingConfig(str(self.config_path))
        self.assertIn("Invalid BMC driver 'ipmi'", str(ctx.exception))

    def test_invalid_settings_values(self):
        for key, value in (
            ("requeue_delay_seconds", -1),
            ("requeue_delay_seconds", "soon"),
            ("max_passes", 0),
            ("max_passes", True),
            ("unprepared", "yes"),
            ("restart_on_failure", 1),
        ):
            with self.subTest(key=key, value=value):
                self._write_config_file(self._config_with("settings", key, value))
                with self.assertRaises(ConfigurationError):
                    ServicingConfig(str(self.config_path))

    def test_invalid_timeout(self):
        config_data = copy.deepcopy(SAMPLE_CONFIG)
        config_data["connection"]["ironic"]["timeout"] = 0
        self._write_config_file(config_data)

        with self.assertRaises(ConfigurationError):
            ServicingConfig(str(self.config_path))

    def test_invalid_servicing_section_types(self):
        self._write_config_file(self._config_with("servicing", "target_firmware_components", {"bmc": "x"}))
        with self.assertRaises(ConfigurationError):
            ServicingConfig(str(self.config_path))

        self._write_config_file(self._config_with("servicing", "target_firmware_settings", ["NumLock"]))
        with self.assertRaises(ConfigurationError):
            ServicingConfig(str(self.config_path))

    def test_servicing_data_from_config(self):
        self._write_config_file(SAMPLE_CONFIG)

        data = ServicingConfig(str(self.config_path)).get_servicing_data()

        self.assertEqual(data.target_firmware_settings, {"NumLock": "Off"})
        self.assertEqual(data.firmware_config, FirmwareConfig(virtualization_enabled=True))
        self.assertEqual(len(data.target_firmware_components), 1)
        self.assertTrue(data.has_firmware_settings_spec)
        self.assertTrue(data.has_firmware_components_spec)
        self.assertFalse(data.servicing_triggered_by_settings)
        self.assertTrue(data.servicing_triggered_by_components)

    def test_explicit_spec_flags_win(self):
        config_data = copy.deepcopy(SAMPLE_CONFIG)
        config_data["servicing"] = {
            "actual_firmware_settings": {"PowerCycleDelay": 5},
            "has_firmware_settings_spec": False,
            "servicing_triggered_by_settings": True,
        }
        self._write_config_file(config_data)

        data = ServicingConfig(str(self.config_path)).get_servicing_data()

        self.assertEqual(data.actual_firmware_settings, {"PowerCycleDelay": "5"})
        self.assertFalse(data.has_firmware_settings_spec)
        self.assertFalse(data.has_firmware_components_spec)


class TestConfigLoader(unittest.TestCase):
    def test_merge_configs_is_deep(self):
        base = {"a": {"x": 1, "y": 2}, "b": [1]}
        override = {"a": {"y": 3}, "c": True}

        merged = ConfigLoader.merge_configs(base, override)

        self.assertEqual(merged, {"a": {"x": 1, "y": 3}, "b": [1], "c": True})
        self.assertEqual(base["a"]["y"], 2)

    def test_validate_required_fields(self):
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigLoader.validate_required_fields({"connection": {}}, ["connection", "settings"])
        self.assertIn("settings", str(ctx.exception))

    def test_validate_nested_fields(self):
        config = {"connection": {"ironic": {"url": ""}, "bmc": "idrac"}}

        with self.assertRaises(ConfigurationError):
            ConfigLoader.validate_nested_fields(config, "connection.ironic", ["url"])
        with self.assertRaises(ConfigurationError):
            ConfigLoader.validate_nested_fields(config, "connection.bmc", ["driver"])
        with self.assertRaises(ConfigurationError):
            ConfigLoader.validate_nested_fields(config, "connection.bmc.driver", ["name"])


if __name__ == "__main__":
    unittest.main()
