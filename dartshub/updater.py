#===============================================================================
#  Darts_Hub_Core | updater.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Self-update of the manager:
#    Idle -> CheckingVersion -> UpToDate | UpdateAvailable
#         -> Downloading -> Extracting -> HandoffToInstaller -> Closing
#  Any difference between the running tag and the published tag counts as
#  newer. The update script copies the staged files over the installation
#  once the manager has exited, so the manager closes right after handoff.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import logging
import subprocess
import threading
import zipfile
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

import requests

from .constants import (
    API_TIMEOUT,
    APP_VERSION,
    RELEASE_CHANGELOG_URL,
    RELEASE_DOWNLOAD_URL,
    RELEASE_LATEST_API,
    RELEASES_API,
    REQUEST_USER_AGENT,
    UNKNOWN_VERSION,
    UPDATE_DIR_NAME,
)
from .download_map import current_platform_key
from .errors import DartsHubError
from .events import EventBus
from .process_helper import download_file, ensure_executable, extract_archive, remove_directory
from .retry import RetryHelper

logger = logging.getLogger(__name__)


class UpdateState(Enum):
    IDLE = "Idle"
    CHECKING_VERSION = "CheckingVersion"
    UP_TO_DATE = "UpToDate"
    UPDATE_AVAILABLE = "UpdateAvailable"
    DOWNLOADING = "Downloading"
    EXTRACTING = "Extracting"
    HANDOFF_TO_INSTALLER = "HandoffToInstaller"
    CLOSING = "Closing"
    FAILED = "Failed"


# os -> (asset label, supported architectures)
_ASSET_PLATFORMS = {
    "linux": ("linux", ("x64", "arm64", "arm")),
    "windows": ("windows", ("x64", "x86", "arm64", "arm")),
    "mac": ("macOS", ("x64", "arm64")),
}


def app_file_for_platform(platform_key: Optional[str] = None) -> Optional[str]:
    """Release asset for a platform key, e.g. "darts-hub-linux-ARM64.zip"; None if unsupported."""
    os_name, _, arch = (platform_key or current_platform_key()).partition("-")
    entry = _ASSET_PLATFORMS.get(os_name)
    if entry is None or arch not in entry[1]:
        return None
    return f"darts-hub-{entry[0]}-{arch.upper()}.zip"


def update_script_name(platform_key: Optional[str] = None) -> str:
    os_name = (platform_key or current_platform_key()).partition("-")[0]
    return "update.bat" if os_name == "windows" else "update.sh"


class Updater:
    def __init__(
        self,
        base_dir: Path,
        bus: Optional[EventBus] = None,
        version: str = APP_VERSION,
        beta_tester: bool = False,
        close_callback: Optional[Callable[[], Any]] = None,
        platform_key: Optional[str] = None,
    ):
        self.base_dir = Path(base_dir)
        self.bus = bus if bus is not None else EventBus()
        self.version = version
        self.beta_tester = beta_tester
        self.close_callback = close_callback
        self.platform_key = platform_key or current_platform_key()

        self.state = UpdateState.IDLE
        self.latest_version = ""
        self.changelog = ""
        self._check_cancel = threading.Event()
        self._update_cancel = threading.Event()
        self._retry = RetryHelper(bus=self.bus)

    # ----------------------------
    # version check
    # ----------------------------
    def _get(self, url: str) -> requests.Response:
        r = requests.get(url, timeout=API_TIMEOUT, headers={"User-Agent": REQUEST_USER_AGENT})
        r.raise_for_status()
        return r

    def latest_stable(self, cancel: Optional[threading.Event] = None) -> str:
        data = self._retry.execute(lambda: self._get(RELEASE_LATEST_API).json(),
                                   "GitHub API Version Check", cancel=cancel)
        tag = data.get("tag_name") if isinstance(data, dict) else None
        if not tag:
            raise ValueError("tag_name not found in release response")
        return str(tag)

    def latest_beta(self, cancel: Optional[threading.Event] = None) -> Optional[str]:
        releases = self._retry.execute(lambda: self._get(RELEASES_API).json(),
                                       "GitHub API Beta Version Check", cancel=cancel)
        for release in releases or []:
            if isinstance(release, dict) and release.get("prerelease"):
                return str(release.get("tag_name") or "") or None
        return None

    def fetch_changelog(self, cancel: Optional[threading.Event] = None) -> str:
        return self._retry.execute(lambda: self._get(RELEASE_CHANGELOG_URL).text,
                                   "Changelog Download", cancel=cancel)

    def check_new_version(self) -> UpdateState:
        """Query the latest release. Starting a check cancels the one still running."""
        cancel = threading.Event()
        previous, self._check_cancel = self._check_cancel, cancel
        previous.set()
        self.state = UpdateState.CHECKING_VERSION
        logger.info("Checking for %s releases (current %s)", "beta" if self.beta_tester else "stable", self.version)
        try:
            latest = self.latest_beta(cancel) if self.beta_tester else self.latest_stable(cancel)
            if cancel is not self._check_cancel:
                logger.info("Version check replaced by a newer one")
                return self.state
            if latest is None:
                logger.warning("No beta releases available")
                self.state = UpdateState.UP_TO_DATE
                self.bus.no_new_release_found.emit(UNKNOWN_VERSION, "No beta releases found.")
            elif latest == self.version:
                logger.info("Current version %s is up to date", self.version)
                self.state = UpdateState.UP_TO_DATE
                self.bus.no_new_release_found.emit(latest, "")
            else:
                logger.info("New version found: %s", latest)
                self.latest_version = latest
                self.changelog = self.fetch_changelog(cancel)
                self.state = UpdateState.UPDATE_AVAILABLE
                self.bus.new_release_found.emit(latest, self.changelog)
        except (DartsHubError, requests.RequestException, ValueError) as exc:
            if cancel is not self._check_cancel:
                logger.info("Replaced version check ended with: %s", exc)
                return self.state
            logger.error("Version check failed: %s", exc)
            self.state = UpdateState.FAILED
            self.bus.release_download_failed.emit(UNKNOWN_VERSION, f"Version check failed: {exc}")
        return self.state

    def check_new_version_async(self) -> threading.Thread:
        t = threading.Thread(target=self.check_new_version, daemon=True, name="update-check")
        t.start()
        return t

    def cancel(self) -> None:
        self._check_cancel.set()
        self._update_cancel.set()

    # ----------------------------
    # update
    # ----------------------------
    def apply_update(self, confirm: Optional[Callable[[str, str], bool]] = None,
                     skip_confirmation: bool = False) -> bool:
        """Update when available and either confirmation is skipped or confirm(version, changelog) agrees."""
        if self.state != UpdateState.UPDATE_AVAILABLE:
            return False
        if not skip_confirmation and (confirm is None or not confirm(self.latest_version, self.changelog)):
            logger.info("Update to %s declined", self.latest_version)
            return False
        return self.update_to_new_version()

    def apply_update_async(self, confirm: Optional[Callable[[str, str], bool]] = None,
                           skip_confirmation: bool = False) -> threading.Thread:
        t = threading.Thread(target=self.apply_update, args=(confirm, skip_confirmation),
                             daemon=True, name="update-apply")
        t.start()
        return t

    @property
    def staging_dir(self) -> Path:
        return self.base_dir / UPDATE_DIR_NAME

    def update_to_new_version(self) -> bool:
        version = self.latest_version
        if not version:
            logger.warning("Update requested but no latest version available")
            return False

        cancel = threading.Event()
        previous, self._update_cancel = self._update_cancel, cancel
        previous.set()
        download_path: Optional[Path] = None
        try:
            app_file = app_file_for_platform(self.platform_key)
            if not app_file:
                raise DartsHubError("There are no releases for your specific OS.")
            url = f"{RELEASE_DOWNLOAD_URL}/{version}/{app_file}"
            download_path = self.staging_dir / app_file
            logger.info("Downloading %s to %s", url, download_path)

            remove_directory(self.staging_dir, create_after=True)
            self.state = UpdateState.DOWNLOADING
            self.bus.release_download_started.emit(version)
            self._retry.execute(
                lambda: download_file(
                    url, download_path,
                    on_progress=lambda got, total: self.bus.release_download_progressed.emit(got, total),
                    cancel=cancel,
                ),
                "Release Download",
                cancel=cancel,
            )

            self.state = UpdateState.EXTRACTING
            extract_archive(download_path, self.staging_dir)
            download_path.unlink()

            self.state = UpdateState.HANDOFF_TO_INSTALLER
            self.start_update_script()
        except (DartsHubError, requests.RequestException, OSError, zipfile.BadZipFile) as exc:
            logger.error("Update to %s failed: %s", version, exc)
            self.state = UpdateState.FAILED
            if self.staging_dir.exists():
                remove_directory(self.staging_dir)
            self.bus.release_download_failed.emit(version, str(exc))
            return False

        logger.info("Update to %s handed over to the update script", version)
        self.bus.release_install_initialized.emit(version, str(download_path))
        self.state = UpdateState.CLOSING
        if self.close_callback is not None:
            self.close_callback()
        return True

    def start_update_script(self) -> subprocess.Popen:
        script = self.base_dir / update_script_name(self.platform_key)
        if not script.is_file():
            raise DartsHubError(f"There is no update-script at {script}")
        if script.suffix == ".sh":
            ensure_executable(script)
            return subprocess.Popen([str(script)], cwd=str(self.base_dir), start_new_session=True)
        flags = getattr(subprocess, "DETACHED_PROCESS", 0) | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
        return subprocess.Popen(["cmd", "/c", str(script)], cwd=str(self.base_dir), creationflags=flags)
