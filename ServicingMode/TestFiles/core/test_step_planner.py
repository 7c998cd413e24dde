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
Unit tests for service step planning.
"""

import unittest
from unittest.mock import MagicMock

import pytest

from ServicingMode.servicing_types import FirmwareConfig, ServicingData, StepInterface
from ServicingMode.ServicingFunctions.bmc_settings import get_bmc_access
from ServicingMode.ServicingFunctions.errors import FirmwareConfigError
from ServicingMode.ServicingFunctions.step_planner import StepPlanner

pytestmark = pytest.mark.core

FIRMWARE_UPDATES = [
    {"component": "bmc", "url": "http://fw.example/bmc.bin"},
    {"component": "bios", "url": "http://fw.example/bios.bin"},
]


class TestStepPlanner(unittest.TestCase):
    """Test cases for StepPlanner.plan."""

    def setUp(self):
        self.mock_logger = MagicMock()
        self.planner = StepPlanner(get_bmc_access("idrac-redfish"), self.mock_logger)

    def test_no_changes_returns_empty_plan(self):
        data = ServicingData(
            actual_firmware_settings={"BootMode": "Uefi", "NumLock": "On"},
            target_firmware_settings={"BootMode": "Uefi"},
        )
        self.assertEqual(self.planner.plan(data), [])

    def test_empty_data_returns_empty_plan(self):
        self.assertEqual(self.planner.plan(ServicingData()), [])

    def test_difference_emits_single_bios_step_with_full_mapping(self):
        data = ServicingData(
            actual_firmware_settings={"BootMode": "Uefi", "NumLock": "On", "ProcTurboMode": "Enabled"},
            target_firmware_settings={"BootMode": "Uefi", "NumLock": "Off"},
        )
        steps = self.planner.plan(data)

        self.assertEqual(len(steps), 1)
        step = steps[0]
        self.assertEqual(step.interface, StepInterface.BIOS)
        self.assertEqual(step.step, "apply_configuration")
        # Unchanged BootMode is sent too, the whole desired mapping goes out
        self.assertEqual(
            step.args["settings"],
            [{"name": "BootMode", "value": "Uefi"}, {"name": "NumLock", "value": "Off"}],
        )

    def test_setting_missing_from_actual_counts_as_difference(self):
        data = ServicingData(
            actual_firmware_settings={"BootMode": "Uefi"},
            target_firmware_settings={"SriovGlobalEnable": "Enabled"},
        )
        steps = self.planner.plan(data)
        self.assertEqual(len(steps), 1)
        self.assertEqual(steps[0].args["settings"], [{"name": "SriovGlobalEnable", "value": "Enabled"}])

    def test_integer_target_values_compare_as_strings(self):
        data = ServicingData(
            actual_firmware_settings={"PowerCycleDelay": "5"},
            target_firmware_settings={"PowerCycleDelay": 5},
        )
        self.assertEqual(self.planner.plan(data), [])

    def test_components_emit_single_firmware_step(self):
        data = ServicingData(target_firmware_components=FIRMWARE_UPDATES)
        steps = self.planner.plan(data)

        self.assertEqual(len(steps), 1)
        self.assertEqual(steps[0].interface, StepInterface.FIRMWARE)
        self.assertEqual(steps[0].step, "update")
        self.assertEqual(steps[0].args["settings"], FIRMWARE_UPDATES)

    def test_bios_step_precedes_firmware_step(self):
        data = ServicingData(
            actual_firmware_settings={"NumLock": "On"},
            target_firmware_settings={"NumLock": "Off"},
            target_firmware_components=FIRMWARE_UPDATES,
        )
        steps = self.planner.plan(data)

        self.assertEqual([s.interface for s in steps], [StepInterface.BIOS, StepInterface.FIRMWARE])

    def test_firmware_config_is_translated_and_merged(self):
        data = ServicingData(
            actual_firmware_settings={"ProcVirtualization": "Disabled", "LogicalProc": "Enabled"},
            target_firmware_settings={"NumLock": "Off"},
            firmware_config=FirmwareConfig(virtualization_enabled=True, simultaneous_multithreading_enabled=True),
        )
        steps = self.planner.plan(data)

        self.assertEqual(len(steps), 1)
        self.assertEqual(
            steps[0].args["settings"],
            [
                {"name": "ProcVirtualization", "value": "Enabled"},
                {"name": "LogicalProc", "value": "Enabled"},
                {"name": "NumLock", "value": "Off"},
            ],
        )

    def test_firmware_config_already_applied_returns_empty_plan(self):
        data = ServicingData(
            actual_firmware_settings={"ProcVirtualization": "Enabled"},
            firmware_config=FirmwareConfig(virtualization_enabled=True),
        )
        self.assertEqual(self.planner.plan(data), [])

    def test_explicit_target_setting_overrides_profile(self):
        data = ServicingData(
            actual_firmware_settings={"ProcVirtualization": "Enabled"},
            target_firmware_settings={"ProcVirtualization": "Disabled"},
            firmware_config=FirmwareConfig(virtualization_enabled=True),
        )
        steps = self.planner.plan(data)
        self.assertEqual(steps[0].args["settings"], [{"name": "ProcVirtualization", "value": "Disabled"}])

    def test_translation_failure_propagates(self):
        planner = StepPlanner(get_bmc_access("redfish"), self.mock_logger)
        data = ServicingData(firmware_config=FirmwareConfig(sriov_enabled=True))

        with self.assertRaises(FirmwareConfigError) as ctx:
            planner.plan(data)
        self.assertIn("redfish", str(ctx.exception))

    def test_plan_is_deterministic(self):
        data = ServicingData(
            actual_firmware_settings={"NumLock": "On"},
            target_firmware_settings={"NumLock": "Off"},
            target_firmware_components=FIRMWARE_UPDATES,
        )
        self.assertEqual(self.planner.plan(data), self.planner.plan(data))

    def test_step_to_dict_wire_format(self):
        data = ServicingData(target_firmware_components=FIRMWARE_UPDATES[:1])
        self.assertEqual(
            self.planner.plan(data)[0].to_dict(),
            {"interface": "firmware", "step": "update", "args": {"settings": FIRMWARE_UPDATES[:1]}},
        )


if __name__ == "__main__":
    unittest.main()
