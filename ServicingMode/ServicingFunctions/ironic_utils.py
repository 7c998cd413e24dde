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
Utility module for Ironic API operations.

This module provides the IronicUtils class which sends GET, PUT and DELETE requests
to the Ironic API and reports success, status code and response data, and the
IronicNodeAccess class which implements the node operations used by servicing:
reading the node, requesting provision state transitions and toggling maintenance.
It is implemented using the requests library.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from ServicingMode.servicing_types import (
    ApiFeatures,
    NodeState,
    ProvisionTarget,
    ServiceStep,
    ServicingOutcome,
)

from .base_connection_manager import BaseConnectionManager
from .errors import TransientServicingError

# Status code reported when no HTTP response was received
NO_RESPONSE = 0


class IronicUtils:
    """
    Utility class for sending requests to the Ironic API.
    """

    def __init__(self, connection: BaseConnectionManager, logger: Optional[logging.Logger] = None):
        """
        Initialize IronicUtils.

        Args:
            connection (BaseConnectionManager): Connection manager owning the session
            logger (Optional[logging.Logger]): Logger instance
        """
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def parse_error_message(text: str) -> str:
        """
        Extract the human readable fault from an Ironic error body.

        Ironic wraps the fault as a JSON string inside "error_message".
        """
        try:
            body = json.loads(text)
        except (TypeError, ValueError):
            return text
        if not isinstance(body, dict):
            return text
        error_message = body.get("error_message", body)
        if isinstance(error_message, str):
            try:
                error_message = json.loads(error_message)
            except ValueError:
                return error_message
        if isinstance(error_message, dict):
            return error_message.get("faultstring", text)
        return text

    def send_request(
        self, method: str, url_path: str, json_data: Optional[Dict[str, Any]] = None
    ) -> Tuple[bool, int, Any]:
        """
        Send a request to the given Ironic path.

        Returns True, the status code and the decoded body on a 2xx response.
        Returns False, the status code and the fault message otherwise; the status
        code is NO_RESPONSE when the request did not reach Ironic.
        """
        url = self.connection.get_ironic_url(url_path)
        self.logger.info(f"Ironic {method} Request: {url}")
        if json_data is not None:
            self.logger.info(f"{method} Data: {json.dumps(json_data)}")

        try:
            response = self.connection.get_session().request(
                method,
                url,
                json=json_data,
                timeout=self.connection.timeout,
            )
        except requests.exceptions.Timeout as e:
            self.logger.error(f"Ironic {method} Timeout: {e}")
            return False, NO_RESPONSE, f"Timeout Error {e}"
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Ironic {method} Exception: {e}")
            return False, NO_RESPONSE, str(e)

        self.logger.info(f"Ironic {method} Response (Status {response.status_code}): {response.text}")
        if 200 <= response.status_code < 300:
            ret_data = response.text
            if ret_data != "":
                try:
                    ret_data = response.json()
                except ValueError as e:
                    self.logger.error(f"Ironic {method} returned a body that is not JSON: {e}")
                    return False, response.status_code, f"Invalid JSON response: {response.text}"
            return True, response.status_code, ret_data
        return False, response.status_code, self.parse_error_message(response.text)

    def get_request(self, url_path: str) -> Tuple[bool, int, Any]:
        return self.send_request("GET", url_path)

    def put_request(self, url_path: str, json_data: Dict[str, Any]) -> Tuple[bool, int, Any]:
        return self.send_request("PUT", url_path, json_data)

    def delete_request(self, url_path: str) -> Tuple[bool, int, Any]:
        return self.send_request("DELETE", url_path)


class IronicNodeAccess:
    """
    Node operations used by the servicing controller.

    Read-only queries raise TransientServicingError on failure. Mutations return
    the outcome Ironic's answer maps to: accepted requests continue immediately,
    a busy node (409) continues after the requeue delay.
    """

    def __init__(
        self,
        utils: IronicUtils,
        node: str,
        requeue_delay: float = 10,
        logger: Optional[logging.Logger] = None,
    ):
        self.utils = utils
        self.node = node
        self.requeue_delay = requeue_delay
        self.logger = logger or logging.getLogger(__name__)

    def _node_path(self, suffix: str = "") -> str:
        return f"v1/nodes/{self.node}{suffix}"

    def get_api_features(self) -> ApiFeatures:
        """
        Query the maximum API microversion advertised by Ironic.

        Raises:
            TransientServicingError: If the version document cannot be read
        """
        ok, status_code, data = self.utils.get_request("/")
        if not ok:
            raise TransientServicingError(f"failed to query Ironic API version: {data}", status_code)
        try:
            version = data["default_version"]["version"]
            return ApiFeatures(max_version=int(version.split(".")[1]))
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise TransientServicingError(f"could not parse Ironic API version from {data}: {e}") from e

    def fetch_node(self) -> NodeState:
        """
        Read the current state of the node.

        Raises:
            TransientServicingError: If the node cannot be read
        """
        ok, status_code, data = self.utils.get_request(self._node_path())
        if not ok or not isinstance(data, dict):
            raise TransientServicingError(f"failed to find node {self.node}: {data}", status_code)
        return NodeState.from_response(data)

    def get_bios_settings(self) -> Dict[str, str]:
        """
        Read the BIOS settings currently cached by Ironic for the node.

        Raises:
            TransientServicingError: If the settings cannot be read
        """
        ok, status_code, data = self.utils.get_request(self._node_path("/bios"))
        if not ok or not isinstance(data, dict):
            raise TransientServicingError(f"failed to read BIOS settings of node {self.node}: {data}", status_code)
        return {setting["name"]: str(setting.get("value")) for setting in data.get("bios", [])}

    def request_transition(
        self, target: ProvisionTarget, steps: Optional[List[ServiceStep]] = None
    ) -> Tuple[bool, ServicingOutcome]:
        """
        Request a provision state transition of the node.

        Args:
            target (ProvisionTarget): Transition target
            steps (Optional[List[ServiceStep]]): Service steps sent with a service request

        Returns:
            Tuple[bool, ServicingOutcome]: Whether the transition started, and the outcome

        Raises:
            TransientServicingError: On connection errors or unexpected status codes
        """
        body: Dict[str, Any] = {"target": target.value}
        if steps is not None:
            body["service_steps"] = [step.to_dict() for step in steps]

        ok, status_code, data = self.utils.put_request(self._node_path("/states/provision"), body)
        if ok:
            return True, ServicingOutcome.continuing(0)
        if status_code == 409:
            self.logger.info(f"could not change state of node {self.node}, busy")
            return False, ServicingOutcome.continuing(self.requeue_delay)
        if status_code == 400:
            return False, ServicingOutcome.failed(str(data))
        raise TransientServicingError(f"failed to change provisioning state to {target.value}: {data}", status_code)

    def set_maintenance_flag(self, value: bool, reason: str = "") -> ServicingOutcome:
        """
        Set or clear the maintenance flag of the node.

        Raises:
            TransientServicingError: On connection errors or unexpected status codes
        """
        if value:
            ok, status_code, data = self.utils.put_request(self._node_path("/maintenance"), {"reason": reason})
        else:
            ok, status_code, data = self.utils.delete_request(self._node_path("/maintenance"))

        if ok:
            return ServicingOutcome.continuing(0)
        if status_code == 409:
            self.logger.info(f"could not update maintenance of node {self.node}, busy")
            return ServicingOutcome.continuing(self.requeue_delay)
        raise TransientServicingError(f"failed to set host maintenance flag to {value}: {data}", status_code)
