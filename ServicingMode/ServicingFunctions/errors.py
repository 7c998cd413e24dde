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
Exceptions raised by the servicing framework.

Transient errors are retried by the caller on its normal schedule. Firmware
configuration errors end the current attempt and are reported to the user.
"""

from typing import Optional


class ServicingError(Exception):
    """Base exception for servicing operations"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class TransientServicingError(ServicingError):
    """Raised when Ironic could not be queried or reported something unexpected"""


class UnknownBMCDriverError(TransientServicingError):
    """Raised when no BIOS settings translator is registered for a BMC driver"""

    def __init__(self, driver: str):
        super().__init__(f"unknown BMC driver {driver}")
        self.driver = driver


class FirmwareConfigError(ServicingError):
    """Raised when a firmware profile cannot be translated for a BMC driver"""


class ConfigurationError(ValueError):
    """Raised when the servicing configuration file is invalid"""
