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
Type definitions for the servicing framework.

This module contains the core data structures used by the servicing controller,
including the desired servicing input, service steps, the node state reported by
Ironic and the outcome returned to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Ironic API microversion that introduced servicing
SERVICING_API_VERSION = 87


class ProvisionState(Enum):
    """Ironic provision states the servicing controller acts on."""

    ACTIVE = "active"
    SERVICING = "servicing"
    SERVICE_WAIT = "service wait"
    SERVICE_FAILED = "service failed"

    @classmethod
    def from_remote(cls, value: str) -> Optional["ProvisionState"]:
        """Map a reported provision state to a known member, or None if unexpected."""
        for state in cls:
            if state.value == value:
                return state
        return None


class StepInterface(Enum):
    """Driver interfaces that service steps run against."""

    BIOS = "bios"
    FIRMWARE = "firmware"


class ProvisionTarget(Enum):
    """Provision state transition targets used by servicing."""

    SERVICE = "service"
    ABORT = "abort"


class OutcomeKind(Enum):
    """
    Outcome kinds returned by a servicing pass.

    Kinds:
        COMPLETE: The node is settled, nothing left to do
        CONTINUING: Work is in progress, call again after requeue_after seconds
        FAILED: The attempt failed, error_message carries the reason
    """

    COMPLETE = "complete"
    CONTINUING = "continuing"
    FAILED = "failed"


@dataclass(frozen=True)
class ServicingOutcome:
    """Result of a single servicing pass."""

    kind: OutcomeKind
    requeue_after: float = 0
    error_message: str = ""

    @classmethod
    def complete(cls) -> "ServicingOutcome":
        return cls(OutcomeKind.COMPLETE)

    @classmethod
    def continuing(cls, delay: float = 0) -> "ServicingOutcome":
        return cls(OutcomeKind.CONTINUING, requeue_after=delay)

    @classmethod
    def failed(cls, message: str) -> "ServicingOutcome":
        return cls(OutcomeKind.FAILED, error_message=message)

    @property
    def dirty(self) -> bool:
        """True when the caller must come back later."""
        return self.kind == OutcomeKind.CONTINUING


@dataclass(frozen=True)
class ServiceStep:
    """A single service step sent to Ironic."""

    interface: StepInterface
    step: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Render the step in the form expected by the provision state API."""
        return {
            "interface": self.interface.value,
            "step": self.step,
            "args": self.args,
        }


@dataclass(frozen=True)
class FirmwareConfig:
    """Vendor-neutral firmware profile translated into BIOS settings per BMC driver."""

    virtualization_enabled: Optional[bool] = None
    simultaneous_multithreading_enabled: Optional[bool] = None
    sriov_enabled: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["FirmwareConfig"]:
        if data is None:
            return None
        return cls(
            virtualization_enabled=data.get("virtualization_enabled"),
            simultaneous_multithreading_enabled=data.get("simultaneous_multithreading_enabled"),
            sriov_enabled=data.get("sriov_enabled"),
        )

    def is_empty(self) -> bool:
        return (
            self.virtualization_enabled is None
            and self.simultaneous_multithreading_enabled is None
            and self.sriov_enabled is None
        )


@dataclass(frozen=True)
class ServicingData:
    """
    Desired servicing input for one pass.

    The servicing_triggered_by_* flags are recorded by the caller when an operation
    starts and must not change until that operation is over.
    """

    actual_firmware_settings: Dict[str, str] = field(default_factory=dict)
    target_firmware_settings: Dict[str, Any] = field(default_factory=dict)
    firmware_config: Optional[FirmwareConfig] = None
    target_firmware_components: List[Dict[str, str]] = field(default_factory=list)
    has_firmware_settings_spec: bool = False
    has_firmware_components_spec: bool = False
    servicing_triggered_by_settings: bool = False
    servicing_triggered_by_components: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServicingData":
        """
        Build servicing data from a plain mapping, e.g. the servicing section of a YAML file.

        When has_firmware_settings_spec / has_firmware_components_spec are not given they
        default to whether the matching target section is non-empty.
        """
        target_settings = dict(data.get("target_firmware_settings") or {})
        firmware_config = FirmwareConfig.from_dict(data.get("firmware_config"))
        components = list(data.get("target_firmware_components") or [])
        return cls(
            actual_firmware_settings={
                name: str(value) for name, value in (data.get("actual_firmware_settings") or {}).items()
            },
            target_firmware_settings=target_settings,
            firmware_config=firmware_config,
            target_firmware_components=components,
            has_firmware_settings_spec=data.get(
                "has_firmware_settings_spec", bool(target_settings) or firmware_config is not None
            ),
            has_firmware_components_spec=data.get("has_firmware_components_spec", bool(components)),
            servicing_triggered_by_settings=data.get("servicing_triggered_by_settings", False),
            servicing_triggered_by_components=data.get("servicing_triggered_by_components", False),
        )


@dataclass(frozen=True)
class NodeState:
    """Node state as reported by Ironic, read fresh on every pass."""

    provision_state: str
    maintenance: bool = False
    last_error: str = ""
    service_step: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, node: Dict[str, Any]) -> "NodeState":
        return cls(
            provision_state=node.get("provision_state") or "",
            maintenance=bool(node.get("maintenance", False)),
            last_error=node.get("last_error") or "",
            service_step=node.get("service_step") or {},
        )


@dataclass(frozen=True)
class ApiFeatures:
    """Ironic API capabilities, expressed as the maximum supported 1.x microversion."""

    max_version: int = 0

    def has_servicing(self) -> bool:
        return self.max_version >= SERVICING_API_VERSION
