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
Servicing Controller
This module drives a node through Ironic servicing: it starts servicing when the
desired firmware settings or components differ from the node, waits while servicing
runs, aborts when the user withdraws the settings or components that started it, and recovers from
failed servicing.

Each call to ServicingController.service() is one reconciliation pass. A pass reads
the node fresh, issues at most one state-changing request and returns an outcome;
nothing is remembered between passes.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from ServicingMode.servicing_types import (
    SERVICING_API_VERSION,
    ApiFeatures,
    NodeState,
    OutcomeKind,
    ProvisionState,
    ProvisionTarget,
    ServiceStep,
    ServicingData,
    ServicingOutcome,
)

from .abort_decider import should_abort_servicing
from .bmc_settings import BMCAccessDetails, get_bmc_access
from .errors import FirmwareConfigError, TransientServicingError
from .ironic_utils import IronicNodeAccess
from .step_planner import StepPlanner

# Seconds to wait before polling a node that is being serviced
PROVISION_REQUEUE_DELAY = 10


@dataclass
class ServicingSession:
    """
    Per-pass context handed to the servicing controller.

    Attributes:
        node_access: Remote access to the node being serviced
        features: Ironic API capabilities
        bmc_driver: BMC driver name used to translate firmware profiles
        logger: Logger used for this pass
        bmc_access_resolver: Resolves the BMC driver name to its settings translator
    """

    node_access: IronicNodeAccess
    features: ApiFeatures
    bmc_driver: str
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    bmc_access_resolver: Callable[[str], BMCAccessDetails] = get_bmc_access

    def get_bmc_access(self) -> BMCAccessDetails:
        return self.bmc_access_resolver(self.bmc_driver)


class ServicingController:
    """Runs reconciliation passes of the servicing state machine."""

    def __init__(self, requeue_delay: float = PROVISION_REQUEUE_DELAY):
        """
        Initialize the servicing controller.

        Args:
            requeue_delay (float): Delay returned while servicing is in progress
        """
        self.requeue_delay = requeue_delay

    def service(
        self,
        session: ServicingSession,
        data: ServicingData,
        unprepared: bool,
        restart_on_failure: bool,
    ) -> Tuple[ServicingOutcome, bool]:
        """
        Run one servicing pass for the node.

        Args:
            session (ServicingSession): Per-pass context
            data (ServicingData): Desired servicing data
            unprepared (bool): True if servicing was requested and has not been started yet
            restart_on_failure (bool): True to retry servicing after a failure

        Returns:
            Tuple[ServicingOutcome, bool]: Outcome of the pass, and whether this pass
            started a new operation on the node

        Raises:
            TransientServicingError: If the node could not be read or is in an unexpected state
        """
        logger = session.logger
        started = False

        if not session.features.has_servicing():
            return (
                ServicingOutcome.failed(
                    f"servicing not supported: requires API version 1.{SERVICING_API_VERSION}, "
                    f"available is 1.{session.features.max_version}"
                ),
                started,
            )

        bmc_access = session.get_bmc_access()
        node = session.node_access.fetch_node()

        try:
            service_steps = StepPlanner(bmc_access, logger).plan(data)
        except FirmwareConfigError as e:
            return ServicingOutcome.failed(e.message), started

        logger.info(
            f"servicing state check: hasSettingsSpec={data.has_firmware_settings_spec} "
            f"hasComponentsSpec={data.has_firmware_components_spec} "
            f"triggeredBySettings={data.servicing_triggered_by_settings} "
            f"triggeredByComponents={data.servicing_triggered_by_components} "
            f"serviceStepsCount={len(service_steps)} nodeState={node.provision_state}"
        )

        phase = ProvisionState.from_remote(node.provision_state)

        if phase == ProvisionState.SERVICE_FAILED:
            if should_abort_servicing(data):
                logger.info("aborting servicing because user cleared the relevant firmware updates/settings")
                return self._abort_servicing(session, node)

            if not restart_on_failure:
                return ServicingOutcome.failed(node.last_error), started

            if node.maintenance:
                logger.info("clearing maintenance flag after a servicing failure")
                return session.node_access.set_maintenance_flag(False), started

            logger.info("restarting servicing because of a previous failure")
            phase, unprepared = ProvisionState.ACTIVE, True

        if phase == ProvisionState.ACTIVE:
            if unprepared:
                started, outcome = self._start_servicing(session, service_steps)
                if started or (outcome is not None and outcome.kind != OutcomeKind.COMPLETE):
                    return outcome, started
            logger.info("servicing finished on the host")
            return ServicingOutcome.complete(), started

        if phase in (ProvisionState.SERVICING, ProvisionState.SERVICE_WAIT):
            if should_abort_servicing(data):
                logger.info(
                    "aborting in-progress servicing because user cleared the relevant firmware updates/settings"
                )
                return self._abort_servicing(session, node)

            logger.info(
                f"waiting for host to become active, state={node.provision_state} serviceStep={node.service_step}"
            )
            return ServicingOutcome.continuing(self.requeue_delay), started

        raise TransientServicingError(f"have unexpected ironic node state {node.provision_state}")

    def _start_servicing(
        self, session: ServicingSession, service_steps: List[ServiceStep]
    ) -> Tuple[bool, Optional[ServicingOutcome]]:
        """
        Start servicing with the planned steps.

        Returns:
            Tuple[bool, Optional[ServicingOutcome]]: (False, None) when there is nothing
            to do, otherwise the started flag and outcome of the service request
        """
        if not service_steps:
            return False, None

        session.logger.info(
            f"starting servicing with steps: {[step.to_dict() for step in service_steps]}"
        )
        started, outcome = session.node_access.request_transition(ProvisionTarget.SERVICE, service_steps)
        return started, outcome

    def _abort_servicing(self, session: ServicingSession, node: NodeState) -> Tuple[ServicingOutcome, bool]:
        """
        Abort servicing of the node.

        Ironic rejects an abort while the node is in maintenance, so a set maintenance
        flag is cleared first and the abort is requested on the next pass.
        """
        if node.maintenance:
            session.logger.info("clearing maintenance flag before aborting servicing")
            return session.node_access.set_maintenance_flag(False), False

        session.logger.info("aborting servicing due to removal of firmware updates/settings")
        started, outcome = session.node_access.request_transition(ProvisionTarget.ABORT)
        session.logger.info(f"abort result: started={started} outcome={outcome}")
        return outcome, started
