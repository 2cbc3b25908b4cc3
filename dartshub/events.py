#===============================================================================
#  Darts_Hub_Core | events.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Notification bus. One Qt signal per notification category; the core emits,
#  UI / CLI layers connect. Apps receive the bus of the manager that owns them.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

from PySide6.QtCore import QObject, Signal


@dataclass(frozen=True)
class RetryProgress:
    operation: str
    current_attempt: int
    max_attempts: int
    is_retrying: bool = False
    remaining_seconds: int = 0
    message: str = ""


class EventBus(QObject):
    # app lifecycle: (app, message)
    download_started = Signal(object, str)
    download_progressed = Signal(object, object, object)   # app, received bytes, total bytes (0 = unknown)
    download_finished = Signal(object, str)
    download_failed = Signal(object, str)
    install_started = Signal(object, str)
    install_finished = Signal(object, str)
    install_failed = Signal(object, str)
    configuration_required = Signal(object, str)
    process_failed = Signal(object, str)

    # self-update: (version, payload)
    new_release_found = Signal(str, str)                 # version, changelog
    no_new_release_found = Signal(str, str)
    release_download_started = Signal(str)
    release_download_progressed = Signal(object, object)   # received, total
    release_download_failed = Signal(str, str)           # version, message
    release_install_initialized = Signal(str, str)       # version, downloaded file

    retry_progressed = Signal(object)                    # RetryProgress

    SIGNAL_NAMES = (
        "download_started",
        "download_progressed",
        "download_finished",
        "download_failed",
        "install_started",
        "install_finished",
        "install_failed",
        "configuration_required",
        "process_failed",
        "new_release_found",
        "no_new_release_found",
        "release_download_started",
        "release_download_progressed",
        "release_download_failed",
        "release_install_initialized",
        "retry_progressed",
    )

    def signals(self) -> Iterator[Tuple[str, object]]:
        """(name, bound signal) pairs, handy for wiring loggers or recorders."""
        for name in self.SIGNAL_NAMES:
            yield name, getattr(self, name)
