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

"""Decide whether a servicing operation has been cancelled by the user."""

from ServicingMode.servicing_types import ServicingData


def should_abort_servicing(data: ServicingData) -> bool:
    """
    Determine if the user withdrew the firmware sections that started servicing.

    - Only settings triggered servicing: abort once the target settings are cleared
    - Only components triggered servicing: abort once the target components are cleared
    - Both triggered servicing: abort only once both are cleared

    Args:
        data (ServicingData): Desired servicing data with presence and trigger flags

    Returns:
        bool: True if the in-flight operation should be aborted
    """
    if data.servicing_triggered_by_settings and data.servicing_triggered_by_components:
        return not data.has_firmware_settings_spec and not data.has_firmware_components_spec
    if data.servicing_triggered_by_settings:
        return not data.has_firmware_settings_spec
    if data.servicing_triggered_by_components:
        return not data.has_firmware_components_spec

    # Neither flag set, nothing to cancel
    return False
