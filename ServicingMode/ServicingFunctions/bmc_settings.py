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
BIOS settings translation for BMC drivers.

This module translates the vendor-neutral FirmwareConfig profile into the
vendor-specific BIOS setting names understood by each BMC driver family.
Translators are registered per driver name with the register_bmc_driver decorator.
"""

from typing import Callable, Dict, List, Optional, Tuple

from ServicingMode.servicing_types import FirmwareConfig

from .errors import FirmwareConfigError, UnknownBMCDriverError

# BMC Driver Registry
_BMC_DRIVER_REGISTRY: Dict[str, Callable[[str], "BMCAccessDetails"]] = {}


def register_bmc_driver(*driver_names: str):
    """
    Class decorator to register a BMC access class for one or more driver names.

    Args:
        driver_names (str): Driver names as used in the BMC configuration

    Usage:
        @register_bmc_driver("idrac-redfish", "idrac-virtualmedia")
        class IDRACAccessDetails(BMCAccessDetails):
            ...
    """

    def decorator(cls):
        for driver_name in driver_names:
            _BMC_DRIVER_REGISTRY[driver_name] = cls
        return cls

    return decorator


def get_driver_names() -> List[str]:
    """
    Get list of all registered BMC driver names.

    Returns:
        List[str]: Sorted list of driver names
    """
    return sorted(_BMC_DRIVER_REGISTRY.keys())


def get_bmc_access(driver: str) -> "BMCAccessDetails":
    """
    Resolve the BMC access details for a driver name.

    Raises:
        UnknownBMCDriverError: If no translator is registered for the driver
    """
    access_class = _BMC_DRIVER_REGISTRY.get(driver)
    if access_class is None:
        raise UnknownBMCDriverError(driver)
    return access_class(driver)


class BMCAccessDetails:
    """
    Base class for BMC driver families.

    Subclasses describe the BIOS attribute names and the enabled/disabled
    values used by their vendor; a subclass that sets SETTING_NAMES to None
    does not support firmware profiles.
    """

    # (virtualization, simultaneous multithreading, SR-IOV)
    SETTING_NAMES: Optional[Tuple[str, str, str]] = None
    ENABLED_VALUE = "Enabled"
    DISABLED_VALUE = "Disabled"

    def __init__(self, driver: str):
        self.driver = driver

    def _value(self, enabled: bool) -> str:
        return self.ENABLED_VALUE if enabled else self.DISABLED_VALUE

    def build_bios_settings(self, firmware_config: Optional[FirmwareConfig]) -> List[Dict[str, str]]:
        """
        Translate a firmware profile into a list of {"name", "value"} BIOS settings.

        Args:
            firmware_config (Optional[FirmwareConfig]): Vendor-neutral profile

        Returns:
            List[Dict[str, str]]: Settings in profile order, unset fields are skipped

        Raises:
            FirmwareConfigError: If the driver does not support firmware profiles
        """
        if firmware_config is None:
            return []

        if self.SETTING_NAMES is None:
            if firmware_config.is_empty():
                return []
            raise FirmwareConfigError(f"firmware settings for {self.driver} are not supported")

        virtualization_name, smt_name, sriov_name = self.SETTING_NAMES
        settings = []
        for name, enabled in (
            (virtualization_name, firmware_config.virtualization_enabled),
            (smt_name, firmware_config.simultaneous_multithreading_enabled),
            (sriov_name, firmware_config.sriov_enabled),
        ):
            if enabled is not None:
                settings.append({"name": name, "value": self._value(enabled)})
        return settings


@register_bmc_driver("idrac-redfish", "idrac-virtualmedia")
class IDRACAccessDetails(BMCAccessDetails):
    """Dell iDRAC"""

    SETTING_NAMES = ("ProcVirtualization", "LogicalProc", "SriovGlobalEnable")


@register_bmc_driver("ilo5", "ilo5-virtualmedia")
class ILO5AccessDetails(BMCAccessDetails):
    """HPE iLO 5"""

    SETTING_NAMES = ("ProcVirtualization", "ProcHyperthreading", "Sriov")


@register_bmc_driver("irmc")
class IRMCAccessDetails(BMCAccessDetails):
    """Fujitsu iRMC"""

    SETTING_NAMES = (
        "cpu_vt_enabled",
        "hyper_threading_enabled",
        "single_root_io_virtualization_support_enabled",
    )
    ENABLED_VALUE = "True"
    DISABLED_VALUE = "False"


@register_bmc_driver("redfish", "redfish-virtualmedia")
class RedfishAccessDetails(BMCAccessDetails):
    """Generic Redfish, no vendor BIOS attribute mapping"""
