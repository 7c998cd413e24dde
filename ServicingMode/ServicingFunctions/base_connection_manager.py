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
Connection management for the Ironic API.

This module provides the BaseConnectionManager class which owns the HTTP
session used to talk to Ironic and builds endpoint URLs from the configuration.
"""

from typing import Any, Dict, Optional

import requests

# Microversion sent on every request, the first one that knows about servicing
IRONIC_API_VERSION = "1.87"


class BaseConnectionManager:
    """
    Manages the HTTP session to the Ironic API.

    Authentication is HTTP basic when username/password are configured,
    or a static X-Auth-Token when a token is configured.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the connection manager.

        Args:
            config: Full configuration dictionary containing connection details
        """
        self.ironic_config = config.get("connection", {}).get("ironic", {})
        self.bmc_config = config.get("connection", {}).get("bmc", {})
        self.session: Optional[requests.Session] = None

    @property
    def timeout(self) -> int:
        return self.ironic_config.get("timeout", 60)

    def get_ironic_url(self, endpoint: str = "") -> str:
        """
        Get Ironic URL for the specified endpoint.

        Args:
            endpoint: API endpoint path (optional), e.g. "v1/nodes/node-0"

        Returns:
            Complete URL including base URL and endpoint
        """
        base_url = self.ironic_config.get("url", "").rstrip("/")
        return f"{base_url}/{endpoint.lstrip('/')}"

    def get_session(self) -> requests.Session:
        """
        Get or create the Ironic session.

        Returns:
            requests.Session configured for Ironic communication
        """
        if self.session is None:
            self.session = requests.Session()
            self.session.verify = self.ironic_config.get("verify", True)
            self.session.headers.update(
                {
                    "X-OpenStack-Ironic-API-Version": IRONIC_API_VERSION,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                }
            )
            if self.ironic_config.get("token"):
                self.session.headers["X-Auth-Token"] = self.ironic_config["token"]
            elif self.ironic_config.get("username"):
                self.session.auth = (
                    self.ironic_config.get("username", ""),
                    self.ironic_config.get("password", ""),
                )
        return self.session

    def close(self):
        """Close the Ironic session if one is open."""
        if self.session:
            try:
                self.session.close()
            finally:
                self.session = None
