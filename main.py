#===============================================================================
#  Darts_Hub_Core  |  Headless Companion-App Manager
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Entry point that drives the dartshub core without a window:
#    - loads settings and the app catalog (creating defaults on first start)
#    - logs every notification of the event bus
#    - refreshes app running states on a timer
#    - optionally checks for a new manager release
#    - runs a profile (argument, "start_profile" setting, or tagged profile)
#    - closes all apps on quit
#
#  Usage
#  -----
#    python main.py ["<profile name>"]
#    DARTSHUB_HOME=/path/to/data python main.py
#
#  Copyright & License Notes
#  -------------------------
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#
#  This source code is provided "AS IS", without warranty of any kind, express
#  or implied, including but not limited to the warranties of merchantability,
#  fitness for a particular purpose, and noninfringement.
#
#  Third-Party Components
#  ----------------------
#  This project uses third-party libraries (PySide6, requests, psutil) which
#  are licensed separately by their respective authors. Ensure compliance with
#  their license terms when distributing this software.
#===============================================================================

from __future__ import annotations

import functools
import logging
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QMetaObject, Qt, QTimer

from dartshub.constants import APP_TITLE, APP_VERSION, LOG_DIR_NAME
from dartshub.errors import ConfigurationError
from dartshub.events import EventBus
from dartshub.log_setup import setup_logging
from dartshub.profile_manager import ProfileManager
from dartshub.settings import load_settings, resolve_base_dir, settings_path
from dartshub.updater import Updater

logger = logging.getLogger("dartshub.main")

QUIET_EVENTS = ("download_progressed", "release_download_progressed", "retry_progressed")


def _describe(value) -> str:
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name
    message = getattr(value, "message", None)
    if isinstance(message, str):
        return message
    return str(value)


def _log_event(event: str, *args) -> None:
    level = logging.DEBUG if event in QUIET_EVENTS else logging.INFO
    logging.getLogger("dartshub.events").log(level, "%s: %s", event, " | ".join(_describe(a) for a in args if a != ""))


def wire_bus_logging(bus: EventBus) -> None:
    for name, sig in bus.signals():
        sig.connect(functools.partial(_log_event, name))


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    base_dir = resolve_base_dir()
    settings = load_settings(settings_path(base_dir))
    setup_logging(base_dir / LOG_DIR_NAME, settings.get("log_level", "INFO"))
    logger.info("%s %s starting in %s", APP_TITLE, APP_VERSION, base_dir)

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    bus = EventBus()
    wire_bus_logging(bus)

    manager = ProfileManager(base_dir, bus)
    try:
        manager.load_apps_and_profiles()
    except ConfigurationError as exc:
        logger.error("Can't load catalog - %s", exc)
        return 2

    refresh_timer = QTimer()
    refresh_timer.setInterval(int(settings.get("refresh_interval_ms") or 1000))
    refresh_timer.timeout.connect(manager.refresh_running_states)
    refresh_timer.start()

    # quit is requested from worker threads too
    def request_quit() -> None:
        QMetaObject.invokeMethod(app, "quit", Qt.QueuedConnection)

    updater = Updater(base_dir, bus, beta_tester=bool(settings.get("beta_tester")), close_callback=request_quit)
    if settings.get("check_updates_on_start"):
        skip = bool(settings.get("skip_update_confirmation"))
        bus.new_release_found.connect(lambda version, changelog: updater.apply_update_async(skip_confirmation=skip))
        updater.check_new_version_async()

    profile_name = argv[0] if argv else settings.get("start_profile") or ""
    if profile_name:
        profile = manager.find_profile(profile_name)
        if profile is None:
            logger.error("Unknown profile '%s'", profile_name)
            return 1
    else:
        profile = manager.tagged_profile()

    if profile is not None:
        if manager.run_profile(profile):
            logger.info("Profile '%s': all apps running", profile.name)
        else:
            logger.warning("Profile '%s': not all apps are running yet", profile.name)
    else:
        logger.info("No profile selected; idle")

    app.aboutToQuit.connect(manager.close_apps)
    signal.signal(signal.SIGINT, lambda *_: request_quit())
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
