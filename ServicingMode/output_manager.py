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
Logging and console output for servicing runs.

Every module logs to its own file inside a per-run log directory. Console output
is optional and goes through Rich; the runner also uses Rich to print a summary
table of the reconciliation passes it performed.

Usage:
    >>> logger = setup_logging("servicing_controller")
    >>> logger.info("servicing finished on the host")
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

# Keep urllib3 connection chatter out of the servicing logs
logging.getLogger("urllib3").setLevel(logging.WARNING)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _LoggingState:
    """Internal class to encapsulate logging state without global variables."""

    def __init__(self):
        self.current_log_dir = None
        self.custom_log_dir = None
        self.lock = threading.Lock()


# Module-level instance to store logging state
_logging_state = _LoggingState()


def set_log_directory(log_dir_path: str) -> None:
    """
    Set a custom log directory path.
    Must be called before the first logger is set up to take effect for it.

    Args:
        log_dir_path (str): Path to the custom log directory
    """
    with _logging_state.lock:
        _logging_state.custom_log_dir = Path(log_dir_path)
        _logging_state.current_log_dir = None


def get_log_directory() -> Path:
    """
    Get or create the log directory for the current run.

    Without a custom directory a timestamped logs/logs_<timestamp> directory is used.

    Returns:
        Path: Path to the current log directory
    """
    with _logging_state.lock:
        if _logging_state.current_log_dir is None:
            if _logging_state.custom_log_dir is not None:
                _logging_state.current_log_dir = _logging_state.custom_log_dir
            else:
                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                _logging_state.current_log_dir = Path("logs") / f"logs_{timestamp}"
            _logging_state.current_log_dir.mkdir(parents=True, exist_ok=True)

    return _logging_state.current_log_dir


def setup_logging(module_name: str, console_output: bool = False) -> logging.Logger:
    """
    Set up file-based logging for a module, optionally with Rich console output.

    Handlers are only attached the first time a module logger is set up.

    Args:
        module_name (str): Name of the module (e.g., 'servicing_controller', 'servicing_runner')
        console_output (bool): If True, add a Rich console handler

    Returns:
        logging.Logger: Configured logger instance
    """
    log_dir = get_log_directory()

    logger = logging.getLogger(module_name)

    with _logging_state.lock:
        if not logger.handlers:
            logger.setLevel(logging.INFO)

            file_handler = logging.FileHandler(log_dir / f"{module_name}.log")
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)

            if console_output:
                console_handler = RichHandler(
                    console=Console(stderr=True),
                    rich_tracebacks=True,
                    show_path=False,
                    log_time_format="[%X]",
                )
                console_handler.setLevel(logging.INFO)
                console_handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
                logger.addHandler(console_handler)

            # Prevent propagation to root logger to avoid duplicate output
            logger.propagate = False

    return logger


def build_pass_table(node: str, passes: List[Dict[str, Any]]) -> Table:
    """
    Build a Rich table describing the reconciliation passes of a run.

    Args:
        node (str): Node identifier shown in the title
        passes (List[Dict[str, Any]]): One dict per pass with keys
            pass, outcome, started, detail

    Returns:
        Table: Renderable summary table
    """
    table = Table(title=f"Servicing passes for node {node}")
    table.add_column("Pass", justify="right")
    table.add_column("Outcome")
    table.add_column("Started")
    table.add_column("Detail")

    styles = {"complete": "green", "continuing": "yellow", "failed": "red", "error": "magenta"}
    for entry in passes:
        outcome = entry.get("outcome", "")
        table.add_row(
            str(entry.get("pass", "")),
            f"[{styles.get(outcome, 'white')}]{outcome}[/]",
            "yes" if entry.get("started") else "no",
            str(entry.get("detail", "")),
        )
    return table


def print_pass_summary(node: str, passes: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """Print the summary table of a servicing run."""
    (console or Console()).print(build_pass_table(node, passes))
