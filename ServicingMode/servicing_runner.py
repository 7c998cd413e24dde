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
Servicing Runner - command line entry point for servicing a node.

Loads a YAML servicing configuration, connects to Ironic and runs reconciliation
passes of the servicing controller against one node.

Example:
    Run a single pass:

    $ servicing-runner --config servicing.yaml

    Keep polling until the node is settled or servicing failed:

    $ servicing-runner --config servicing.yaml --watch --console

Exit codes:
    0  servicing complete
    1  servicing failed
    2  servicing still in progress
    3  Ironic could not be reached or reported an unexpected state
"""

import argparse
import dataclasses
import logging
import sys
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import urllib3
import yaml
from urllib3.exceptions import InsecureRequestWarning

from ServicingMode.output_manager import print_pass_summary, set_log_directory, setup_logging
from ServicingMode.servicing_types import OutcomeKind, ServicingData
from ServicingMode.ServicingFunctions.base_connection_manager import BaseConnectionManager
from ServicingMode.ServicingFunctions.config_utils import ServicingConfig
from ServicingMode.ServicingFunctions.errors import ConfigurationError, TransientServicingError
from ServicingMode.ServicingFunctions.ironic_utils import IronicNodeAccess, IronicUtils
from ServicingMode.ServicingFunctions.servicing_controller import ServicingController, ServicingSession

EXIT_COMPLETE = 0
EXIT_FAILED = 1
EXIT_CONTINUING = 2
EXIT_TRANSIENT = 3

# Lower bound on the sleep between passes in watch mode
MIN_POLL_SECONDS = 1


def fill_actual_settings(
    data: ServicingData, servicing_section: Dict[str, Any], node_access: IronicNodeAccess
) -> ServicingData:
    """
    Use the BIOS settings cached by Ironic when the configuration does not list actual settings.
    """
    if "actual_firmware_settings" in servicing_section or not data.has_firmware_settings_spec:
        return data
    return dataclasses.replace(data, actual_firmware_settings=node_access.get_bios_settings())


def run_servicing(
    config: ServicingConfig,
    node_access: IronicNodeAccess,
    *,
    watch: bool = False,
    max_passes: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Tuple[int, List[Dict[str, Any]]]:
    """
    Run servicing passes for the configured node.

    Args:
        config (ServicingConfig): Loaded configuration
        node_access (IronicNodeAccess): Access to the node
        watch (bool): Keep running passes while servicing is in progress
        max_passes (Optional[int]): Pass limit in watch mode, defaults to settings.max_passes
        logger (Optional[logging.Logger]): Logger instance
        sleep (Callable[[float], None]): Sleep function used between passes

    Returns:
        Tuple[int, List[Dict[str, Any]]]: Exit code and one summary entry per pass
    """
    logger = logger or logging.getLogger(__name__)
    settings = config.get_config("settings")
    unprepared = settings["unprepared"]
    restart_on_failure = settings["restart_on_failure"]
    requeue_delay = settings["requeue_delay_seconds"]
    pass_limit = (max_passes or settings["max_passes"]) if watch else 1

    controller = ServicingController(requeue_delay=requeue_delay)
    passes: List[Dict[str, Any]] = []
    exit_code = EXIT_CONTINUING

    for pass_number in range(1, pass_limit + 1):
        try:
            features = node_access.get_api_features()
            data = config.get_servicing_data()
            # Older Ironic rejects node reads at the servicing microversion, let the controller report it
            if features.has_servicing():
                data = fill_actual_settings(data, config.get_config("servicing"), node_access)
            session = ServicingSession(
                node_access=node_access,
                features=features,
                bmc_driver=config.bmc_driver,
                logger=logger,
            )
            outcome, started = controller.service(session, data, unprepared, restart_on_failure)
        except TransientServicingError as e:
            logger.warning(f"Pass {pass_number}: transient error: {e.message}")
            passes.append({"pass": pass_number, "outcome": "error", "started": False, "detail": e.message})
            exit_code = EXIT_TRANSIENT
            if watch and pass_number < pass_limit:
                sleep(max(requeue_delay, MIN_POLL_SECONDS))
            continue

        detail = outcome.error_message if outcome.kind == OutcomeKind.FAILED else ""
        if outcome.kind == OutcomeKind.CONTINUING:
            detail = f"requeue after {outcome.requeue_after}s"
        passes.append({"pass": pass_number, "outcome": outcome.kind.value, "started": started, "detail": detail})
        logger.info(f"Pass {pass_number}: outcome={outcome.kind.value} started={started} {detail}".rstrip())

        # An operation is running now, later passes must not start another one
        if started:
            unprepared = False

        if outcome.kind == OutcomeKind.COMPLETE:
            return EXIT_COMPLETE, passes
        if outcome.kind == OutcomeKind.FAILED:
            return EXIT_FAILED, passes

        exit_code = EXIT_CONTINUING
        if watch and pass_number < pass_limit:
            sleep(max(outcome.requeue_after, MIN_POLL_SECONDS))

    return exit_code, passes


def positive_int(value: str) -> int:
    """argparse type for options that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got: {value}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Service firmware settings and components of an Ironic node")
    parser.add_argument("-c", "--config", required=True, help="Path to the servicing YAML configuration")
    parser.add_argument("-w", "--watch", action="store_true", help="Poll until servicing completes or fails")
    parser.add_argument("-n", "--max-passes", type=positive_int, default=None, help="Maximum passes in watch mode")
    parser.add_argument("-l", "--log-dir", default=None, help="Directory for log files")
    parser.add_argument("--console", action="store_true", help="Also log to the console")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function
    """
    args = parse_args(argv)

    if args.log_dir:
        set_log_directory(args.log_dir)
    logger = setup_logging("servicing_runner", console_output=args.console)

    try:
        config = ServicingConfig(args.config)
    except (FileNotFoundError, ConfigurationError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    if not config.config["connection"]["ironic"].get("verify", True):
        urllib3.disable_warnings(InsecureRequestWarning)

    connection = BaseConnectionManager(config.config)
    try:
        node_access = IronicNodeAccess(
            IronicUtils(connection, logger),
            config.node,
            requeue_delay=config.get_config("settings")["requeue_delay_seconds"],
            logger=logger,
        )
        exit_code, passes = run_servicing(
            config, node_access, watch=args.watch, max_passes=args.max_passes, logger=logger
        )
    finally:
        connection.close()

    print_pass_summary(config.node, passes)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
