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
Service step planning.

Builds the ordered list of service steps needed to bring a node's BIOS settings
and firmware components to the desired state. The BIOS apply_configuration step
always carries the full desired settings list; the comparison with the actual
settings only decides whether the step is needed.
"""

import logging
from typing import Any, Dict, List, Optional

from ServicingMode.servicing_types import ServiceStep, ServicingData, StepInterface

from .bmc_settings import BMCAccessDetails


class StepPlanner:
    """Plans service steps for a node using the BIOS settings translator of its BMC."""

    def __init__(self, bmc_access: BMCAccessDetails, logger: Optional[logging.Logger] = None):
        """
        Initialize the step planner.

        Args:
            bmc_access (BMCAccessDetails): Translator for firmware profiles
            logger (Optional[logging.Logger]): Logger instance
        """
        self.bmc_access = bmc_access
        self.logger = logger or logging.getLogger(__name__)

    def plan(self, data: ServicingData) -> List[ServiceStep]:
        """
        Build the service steps for the desired servicing data.

        Args:
            data (ServicingData): Desired and actual settings plus firmware updates

        Returns:
            List[ServiceStep]: BIOS step first, then firmware step; empty if nothing to do

        Raises:
            FirmwareConfigError: If the firmware profile cannot be translated
        """
        steps = []

        fw_config_settings = []
        if data.firmware_config is not None:
            fw_config_settings = self.bmc_access.build_bios_settings(data.firmware_config)

        desired_settings = self.get_desired_firmware_settings(data.target_firmware_settings, fw_config_settings)
        if self.settings_differ(data.actual_firmware_settings, desired_settings):
            self.logger.info(f"Applying BIOS config service steps, settings: {desired_settings}")
            steps.append(
                ServiceStep(
                    interface=StepInterface.BIOS,
                    step="apply_configuration",
                    args={"settings": desired_settings},
                )
            )

        if data.target_firmware_components:
            self.logger.info(f"Applying firmware update service steps, settings: {data.target_firmware_components}")
            steps.append(
                ServiceStep(
                    interface=StepInterface.FIRMWARE,
                    step="update",
                    args={"settings": list(data.target_firmware_components)},
                )
            )

        return steps

    @staticmethod
    def get_desired_firmware_settings(
        target_settings: Dict[str, Any], fw_config_settings: List[Dict[str, str]]
    ) -> List[Dict[str, str]]:
        """
        Merge translated profile settings with explicit target settings.

        Profile settings keep their order and come first; an explicit target
        setting with the same name replaces the profile value in place.
        """
        merged: Dict[str, str] = {}
        for setting in fw_config_settings:
            merged[setting["name"]] = str(setting["value"])
        for name, value in target_settings.items():
            merged[name] = str(value)
        return [{"name": name, "value": value} for name, value in merged.items()]

    @staticmethod
    def settings_differ(actual_settings: Dict[str, str], desired_settings: List[Dict[str, str]]) -> bool:
        """True if any desired setting is missing from, or different to, the actual settings."""
        for setting in desired_settings:
            name = setting["name"]
            if name not in actual_settings or str(actual_settings[name]) != setting["value"]:
                return True
        return False
