#===============================================================================
#  Darts_Hub_Core | apps.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  App descriptors. Four kinds share one capability set (run / close /
#  is_configurable) and differ only in how the thing to execute is resolved:
#    - downloadable: fetched per OS/arch, unpacked, spawned from <base>/<name>
#    - installable : fetched installer, run once, then spawned from its install path
#    - local       : user-chosen executable (first configuration argument)
#    - open        : URL / document handed to the OS shell, not tracked
#  Spawned processes have stdout/stderr captured into a rolling monitor buffer.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
import tarfile
import threading
import webbrowser
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import psutil
import requests

from .argument import Argument
from .configuration import Configuration
from .constants import DOWNLOAD_JOIN_TIMEOUT, INSTALLER_ARGUMENTS, LOG_DIR_NAME, MAX_APP_MONITOR_ENTRIES
from .errors import ArgumentError, OperationCancelled, ProcessLaunchError, RetryExhaustedError
from .events import EventBus
from .process_helper import (
    download_file,
    ensure_executable,
    extract_archive,
    file_name_from_url,
    find_pids_by_name,
    get_file_size_by_url,
    get_file_size_local,
    is_archive,
    is_process_running,
    kill_process_by_name,
    remove_directory,
    run_logged,
    search_executable,
    terminate_tree,
)
from .retry import RetryHelper

logger = logging.getLogger(__name__)

KIND_DOWNLOADABLE = "downloadable"
KIND_INSTALLABLE = "installable"
KIND_LOCAL = "local"
KIND_OPEN = "open"


def is_url(target: str) -> bool:
    t = (target or "").strip().lower()
    return t.startswith("http://") or t.startswith("https://")


def _start_elevated(path: Path, arguments: str) -> None:
    # ShellExecute "runas"; the arguments and cwd parameters need Python 3.10
    os.startfile(str(path), "runas", arguments, str(path.parent))  # type: ignore[attr-defined]


def _startfile(path: str) -> None:
    # documents / shortcuts: let the OS pick the handler
    if hasattr(os, "startfile"):
        os.startfile(path)  # type: ignore[attr-defined]
    elif sys.platform == "darwin":
        subprocess.Popen(["open", path])
    else:
        subprocess.Popen(["xdg-open", path])


class AppBase:
    KIND = ""

    def __init__(
        self,
        name: str,
        custom_name: Optional[str] = None,
        help_url: Optional[str] = None,
        changelog_url: Optional[str] = None,
        description_short: Optional[str] = None,
        description_long: Optional[str] = None,
        run_as_admin: bool = False,
        chmod: bool = True,
        configuration: Optional[Configuration] = None,
    ):
        self.name = name
        self.custom_name = custom_name or name
        self.help_url = help_url
        self.changelog_url = changelog_url
        self.description_short = description_short
        self.description_long = description_long
        self.run_as_admin = run_as_admin
        self.chmod = chmod
        self.configuration = configuration

        # runtime only
        self.bus: Optional[EventBus] = None
        self.runtime_arguments: Optional[Dict[str, str]] = None
        self.argument_required: Optional[Argument] = None
        self._lock = threading.RLock()
        self._close_lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._pid = 0
        self._running = False
        self._executable: Optional[str] = None
        self._stdout: List[str] = []
        self._stderr: List[str] = []
        self._monitor_entries = 0
        self._output_log = logging.getLogger(f"dartshub.app.{name}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    # ----------------------------
    # capabilities
    # ----------------------------
    def is_configurable(self) -> bool:
        return self.configuration is not None

    def is_installable(self) -> bool:
        return False

    def is_runnable(self) -> bool:
        return True

    def install(self, run_after: bool = False) -> bool:
        """Start fetching / installing. True when something was started (run must wait)."""
        return False

    def run_executable(self) -> Optional[str]:
        raise NotImplementedError

    def is_installed(self) -> bool:
        exe = self.run_executable()
        return bool(exe) and Path(exe).is_file()

    # ----------------------------
    # lifecycle
    # ----------------------------
    def run(self, runtime_arguments: Optional[Mapping[str, str]] = None) -> bool:
        self.runtime_arguments = dict(runtime_arguments) if runtime_arguments else None
        if self.is_running():
            return True
        if self.install(run_after=True):
            return False
        try:
            return self._run_process(self.runtime_arguments)
        except ProcessLaunchError as exc:
            logger.error("Starting %s failed: %s", self.name, exc)
            self._emit("process_failed", self, str(exc))
            return False

    def rerun(self, runtime_arguments: Optional[Mapping[str, str]] = None) -> bool:
        self.close()
        return self.run(runtime_arguments if runtime_arguments is not None else self.runtime_arguments)

    def is_running(self) -> bool:
        with self._lock:
            if self._process is not None:
                if self._process.poll() is not None:
                    self._mark_stopped(self._process)
            elif self._running and self._pid and not is_process_running(self._pid):
                self._mark_stopped(None)
            elif self._running and not self._pid and self._executable:
                # started elevated / detached: only findable by name
                if not find_pids_by_name(self._executable):
                    self._mark_stopped(None)
            return self._running

    def close(self) -> bool:
        """Terminate the process and its descendants. False when termination failed."""
        with self._close_lock:
            if not self.is_running() or not self.is_runnable():
                return True
            pid, exe = self._pid, self._executable
            ok = True
            try:
                if pid:
                    terminate_tree(pid)
                if exe and not is_url(exe):
                    kill_process_by_name(exe)
            except (psutil.Error, OSError) as exc:
                ok = False
                logger.error("Can't close %s (%s): %s", self.name, exe, exc)
                self._emit("process_failed", self, f"close failed: {exc}")
            with self._lock:
                if self._process is not None:
                    try:
                        self._process.wait(timeout=2)
                    except subprocess.TimeoutExpired:
                        ok = False
                self._mark_stopped(self._process)
            return ok

    # ----------------------------
    # arguments
    # ----------------------------
    def compose_arguments(
        self,
        runtime_arguments: Optional[Mapping[str, str]] = None,
        masked: bool = False,
        notify: bool = True,
    ) -> Optional[str]:
        """Rendered argument string, or None when a required value is missing / invalid."""
        if not self.is_configurable():
            return ""
        try:
            rendered = self.configuration.render(runtime_arguments, masked=masked)
        except ArgumentError as exc:
            self.argument_required = exc.argument
            if notify:
                msg = f"{exc.detail} - Please correct it."
                logger.warning("%s: configuration required: %s", self.name, msg)
                self._emit("configuration_required", self, msg)
            return None
        self.argument_required = None
        return rendered

    def password_values(self) -> List[str]:
        if not self.configuration:
            return []
        return [a.value for a in self.configuration.arguments if a.value and a.is_password_like()]

    # ----------------------------
    # process spawning
    # ----------------------------
    def _run_process(self, runtime_arguments: Optional[Mapping[str, str]]) -> bool:
        if not self.is_runnable():
            return True
        arguments = self.compose_arguments(runtime_arguments)
        if arguments is None:
            return False
        exe = self.run_executable()
        if not exe:
            logger.warning("%s: no executable found", self.name)
            return False

        if is_url(exe):
            webbrowser.open(exe)
            return True

        path = Path(exe)
        shown = self.compose_arguments(runtime_arguments, masked=True, notify=False) or ""
        logger.info("Starting %s: %s %s", self.name, path, shown)
        try:
            if self.chmod and os.name != "nt":
                ensure_executable(path)
            if os.name == "nt" and self.run_as_admin:
                _start_elevated(path, arguments)
                proc = None
            else:
                proc = subprocess.Popen(
                    self._command(path, arguments),
                    cwd=str(path.parent),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
                )
        except (OSError, ValueError) as exc:
            raise ProcessLaunchError(self.name, f"can't start {path}: {exc}") from exc

        with self._lock:
            self._stdout, self._stderr, self._monitor_entries = [], [], 0
            self._process = proc
            self._pid = proc.pid if proc else 0
            self._executable = str(path)
            self._running = True

        if proc is not None:
            for stream, is_error in ((proc.stdout, False), (proc.stderr, True)):
                threading.Thread(target=self._pump, args=(stream, is_error), daemon=True).start()
            threading.Thread(target=self._wait_exit, args=(proc,), daemon=True).start()
        return True

    @staticmethod
    def _command(path: Path, arguments: str):
        if os.name == "nt":
            cmd = subprocess.list2cmdline([str(path)])
            return f"{cmd} {arguments}" if arguments else cmd
        return [str(path), *shlex.split(arguments)]

    def _pump(self, stream, is_error: bool) -> None:
        for line in iter(stream.readline, ""):
            self.append_output(line.rstrip("\r\n"), is_error)
        stream.close()

    def _wait_exit(self, proc: subprocess.Popen) -> None:
        code = proc.wait()
        logger.info("%s exited with code %s", self.name, code)
        with self._lock:
            self._mark_stopped(proc)

    def _mark_stopped(self, proc: Optional[subprocess.Popen]) -> None:
        if proc is not self._process:
            return
        self._process = None
        self._pid = 0
        self._running = False

    # ----------------------------
    # monitor
    # ----------------------------
    def append_output(self, line: str, is_error: bool = False) -> None:
        if not line:
            return
        self._output_log.debug(line)
        with self._lock:
            if self._monitor_entries >= MAX_APP_MONITOR_ENTRIES * 2:
                self._stdout = self._stdout[-MAX_APP_MONITOR_ENTRIES:]
                self._stderr = self._stderr[-MAX_APP_MONITOR_ENTRIES:]
                self._monitor_entries = MAX_APP_MONITOR_ENTRIES
            (self._stderr if is_error else self._stdout).append(line)
            self._monitor_entries += 1

    @property
    def monitor(self) -> str:
        with self._lock:
            if not self._stdout and not self._stderr:
                return ""
            return "\n".join(self._stdout) + "\n\n" + "\n".join(self._stderr)

    # ----------------------------
    # notifications
    # ----------------------------
    def _emit(self, signal: str, *args: Any) -> None:
        if self.bus is not None:
            getattr(self.bus, signal).emit(*args)

    # ----------------------------
    # persistence
    # ----------------------------
    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "customName": self.custom_name or self.name}
        for key, value in (
            ("helpUrl", self.help_url),
            ("changelogUrl", self.changelog_url),
            ("descriptionShort", self.description_short),
            ("descriptionLong", self.description_long),
        ):
            if value:
                d[key] = value
        if self.run_as_admin:
            d["runAsAdmin"] = True
        if not self.chmod:
            d["chmod"] = False
        if self.configuration is not None:
            d["configuration"] = self.configuration.to_dict()
        return d

    @classmethod
    def _kwargs_from_dict(cls, d: Dict[str, Any]) -> Dict[str, Any]:
        if not d.get("name"):
            raise ValueError(f"app record without 'name': {d!r}")
        cfg = d.get("configuration")
        return dict(
            name=str(d["name"]),
            custom_name=d.get("customName"),
            help_url=d.get("helpUrl"),
            changelog_url=d.get("changelogUrl"),
            description_short=d.get("descriptionShort"),
            description_long=d.get("descriptionLong"),
            run_as_admin=bool(d.get("runAsAdmin", False)),
            chmod=bool(d.get("chmod", True)),
            configuration=Configuration.from_dict(cfg) if cfg else None,
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        return cls(**cls._kwargs_from_dict(d))


class AppDownloadable(AppBase):
    KIND = KIND_DOWNLOADABLE

    def __init__(self, name: str, download_url: str = "", base_path: Optional[Path] = None, **kwargs: Any):
        super().__init__(name, **kwargs)
        self.download_url = download_url
        self.base_path = Path(base_path) if base_path else Path.cwd()
        self._cancel: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None
        self._run_after_download = False

    @property
    def download_dir(self) -> Path:
        return self.base_path / self.name

    @property
    def download_file(self) -> Path:
        return self.download_dir / file_name_from_url(self.download_url)

    def is_installable(self) -> bool:
        return True

    def run_executable(self) -> Optional[str]:
        exe = search_executable(self.download_dir)
        return str(exe) if exe else None

    def is_downloading(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def cancel_download(self) -> None:
        if self._cancel is not None:
            self._cancel.set()

    def _retry(self) -> RetryHelper:
        return RetryHelper(bus=self.bus)

    def install(self, run_after: bool = False) -> bool:
        if not self.download_url:
            return False
        try:
            remote = self._retry().execute(lambda: get_file_size_by_url(self.download_url),
                                           f"{self.name} size check")
        except (requests.RequestException, RetryExhaustedError) as exc:
            if self.run_executable():
                # offline, but a previous download is still usable
                logger.warning("%s: size check failed, using existing download: %s", self.name, exc)
                return False
            logger.error("%s: size check failed: %s", self.name, exc)
            self._emit("download_failed", self, str(exc))
            return False

        local = get_file_size_local(self.download_file)
        if remote == local or (remote < 0 and local >= 0):
            return False

        cancel = self._supersede_worker()
        try:
            remove_directory(self.download_dir, create_after=True)
        except OSError as exc:
            logger.error("%s: can't prepare %s: %s", self.name, self.download_dir, exc)
            self._emit("download_failed", self, str(exc))
            return False

        self._run_after_download = run_after
        logger.info("%s: downloading %s", self.name, self.download_url)
        self._emit("download_started", self, "")
        self._start_worker(self._download_worker, cancel)
        return True

    def _supersede_worker(self) -> threading.Event:
        """Cancel a running worker, wait for it to leave the directory, and hand out a fresh event."""
        previous, old_cancel = self._worker, self._cancel
        self._cancel = threading.Event()
        if old_cancel is not None:
            old_cancel.set()
        if previous is not None and previous.is_alive() and previous is not threading.current_thread():
            previous.join(DOWNLOAD_JOIN_TIMEOUT)
            if previous.is_alive():
                logger.warning("%s: previous download still running after %.0fs", self.name, DOWNLOAD_JOIN_TIMEOUT)
        return self._cancel

    def _is_superseded(self, cancel: threading.Event) -> bool:
        return cancel is not self._cancel

    def _start_worker(self, target, *args) -> None:
        self._worker = threading.Thread(target=target, args=args, daemon=True, name=f"download-{self.name}")
        self._worker.start()

    def _download_worker(self, cancel: threading.Event) -> None:
        target = self.download_file
        try:
            self._retry().execute(
                lambda: download_file(
                    self.download_url,
                    target,
                    on_progress=lambda got, total: self._emit("download_progressed", self, got, total),
                    cancel=cancel,
                ),
                f"{self.name} download",
                cancel=cancel,
            )
            if is_archive(target):
                extract_archive(target, self.download_dir)
            elif self.chmod:
                ensure_executable(target)
        except OperationCancelled:
            if self._is_superseded(cancel):
                logger.info("%s: download replaced by a newer one", self.name)
                return
            logger.info("%s: download cancelled", self.name)
            self._emit("download_failed", self, "Download cancelled")
            return
        except (requests.RequestException, RetryExhaustedError, OSError,
                zipfile.BadZipFile, tarfile.TarError) as exc:
            if self._is_superseded(cancel):
                logger.info("%s: replaced download ended with: %s", self.name, exc)
                return
            logger.error("%s: download failed: %s", self.name, exc)
            if not cancel.is_set():
                remove_directory(self.download_dir)
            self._emit("download_failed", self, str(exc))
            return

        if self._is_superseded(cancel):
            logger.info("%s: download replaced by a newer one", self.name)
            return
        logger.info("%s: download finished", self.name)
        self._emit("download_finished", self, "success")
        self._after_download()

    def _after_download(self) -> None:
        if self._run_after_download:
            self._run_after_download = False
            self.run(self.runtime_arguments)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["downloadUrl"] = self.download_url
        return d

    @classmethod
    def _kwargs_from_dict(cls, d: Dict[str, Any]) -> Dict[str, Any]:
        kw = super()._kwargs_from_dict(d)
        kw["download_url"] = str(d.get("downloadUrl") or "")
        return kw


class AppInstallable(AppDownloadable):
    KIND = KIND_INSTALLABLE

    def __init__(
        self,
        name: str,
        download_url: str = "",
        executable: str = "",
        default_path_executable: str = "",
        starts_after_installation: bool = False,
        run_as_admin_install: bool = False,
        is_service: bool = False,
        **kwargs: Any,
    ):
        super().__init__(name, download_url=download_url, **kwargs)
        self.executable = executable
        self.default_path_executable = default_path_executable
        self.starts_after_installation = starts_after_installation
        self.run_as_admin_install = run_as_admin_install
        self.is_service = is_service

    def is_runnable(self) -> bool:
        return not self.is_service

    def install_dir(self) -> Optional[Path]:
        if not self.default_path_executable:
            return None
        return Path(os.path.expandvars(os.path.expanduser(self.default_path_executable)))

    def run_executable(self) -> Optional[str]:
        d = self.install_dir()
        if d is None or not self.executable:
            return None
        exe = d / self.executable
        return str(exe) if exe.is_file() else None

    def is_running(self) -> bool:
        if self.is_service:
            return bool(self.executable and find_pids_by_name(self.executable))
        return super().is_running()

    def install(self, run_after: bool = False) -> bool:
        if self.run_executable():
            return False
        return super().install(run_after)

    def installer_path(self) -> Optional[Path]:
        for p in sorted(self.download_dir.rglob("*")):
            if p.is_file() and p.suffix.lower() in (".exe", ".msi"):
                return p
        return self.download_file if self.download_file.is_file() else None

    def _installer_command(self, installer: Path) -> List[str]:
        if installer.suffix.lower() == ".msi":
            base = ["msiexec", "/i", str(installer)]
        else:
            base = [str(installer)]
        if os.name == "nt" and self.run_as_admin_install:
            args = ",".join(f"'{a}'" for a in base[1:] + INSTALLER_ARGUMENTS)
            script = (f"$p = Start-Process -FilePath '{base[0]}' -ArgumentList {args} "
                      f"-Verb RunAs -Wait -PassThru; exit $p.ExitCode")
            return ["powershell", "-NoProfile", "-Command", script]
        return base + INSTALLER_ARGUMENTS

    def _after_download(self) -> None:
        self._emit("install_started", self, "")
        try:
            installer = self.installer_path()
            if installer is None:
                raise FileNotFoundError(f"Installer for {self.name} not found")
            log_file = self.base_path / LOG_DIR_NAME / f"{self.name}-install.log"
            log_file.parent.mkdir(parents=True, exist_ok=True)
            code = run_logged(self._installer_command(installer), installer.parent, log_file)
        except OSError as exc:
            logger.error("%s: installer failed to start: %s", self.name, exc)
            self._emit("install_failed", self, str(exc))
            return

        if code != 0:
            logger.error("%s: installer exited with %s", self.name, code)
            self._emit("install_failed", self, f"error: {code}")
            return

        logger.info("%s: installed", self.name)
        self._emit("install_finished", self, "success")
        self._run_after_download = False
        if not self.starts_after_installation:
            self.run(self.runtime_arguments)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        if self.executable:
            d["executable"] = self.executable
        if self.default_path_executable:
            d["defaultPathExecutable"] = self.default_path_executable
        if self.starts_after_installation:
            d["startsAfterInstallation"] = True
        if self.run_as_admin_install:
            d["runAsAdminInstall"] = True
        if self.is_service:
            d["isService"] = True
        return d

    @classmethod
    def _kwargs_from_dict(cls, d: Dict[str, Any]) -> Dict[str, Any]:
        kw = super()._kwargs_from_dict(d)
        kw.update(
            executable=str(d.get("executable") or ""),
            default_path_executable=str(d.get("defaultPathExecutable") or ""),
            starts_after_installation=bool(d.get("startsAfterInstallation", False)),
            run_as_admin_install=bool(d.get("runAsAdminInstall", False)),
            is_service=bool(d.get("isService", False)),
        )
        return kw


class AppLocal(AppBase):
    KIND = KIND_LOCAL

    def __init__(self, name: str, configuration: Optional[Configuration] = None, **kwargs: Any):
        if configuration is None:
            configuration = Configuration(
                prefix="",
                delimiter="",
                is_raw=True,
                arguments=[
                    Argument(name="path-to-executable", type="file", required=True),
                    Argument(name="arguments", type="string"),
                ],
            )
        super().__init__(name, configuration=configuration, **kwargs)

    def is_configurable(self) -> bool:
        return True

    def run_executable(self) -> Optional[str]:
        if not self.configuration or not self.configuration.arguments:
            return None
        return self.configuration.arguments[0].value or None


class AppOpen(AppBase):
    KIND = KIND_OPEN

    def __init__(self, name: str, configuration: Optional[Configuration] = None,
                 default_value: Optional[str] = None, **kwargs: Any):
        if configuration is None:
            configuration = Configuration(
                prefix="",
                delimiter="",
                is_raw=True,
                arguments=[
                    Argument(name="file", type="string", required=True,
                             name_human="file/url", value=default_value or None),
                ],
            )
        super().__init__(name, configuration=configuration, **kwargs)

    def is_configurable(self) -> bool:
        return True

    def run_executable(self) -> Optional[str]:
        if not self.configuration or not self.configuration.arguments:
            return None
        return self.configuration.arguments[0].value or None

    def is_running(self) -> bool:
        # handed over to the shell; nothing to track
        return False

    def close(self) -> bool:
        return True

    def _run_process(self, runtime_arguments: Optional[Mapping[str, str]]) -> bool:
        if self.compose_arguments(runtime_arguments) is None:
            return False
        target = self.run_executable()
        logger.info("Opening %s: %s", self.name, target)
        try:
            if is_url(target):
                return bool(webbrowser.open(target))
            _startfile(target)
        except OSError as exc:
            raise ProcessLaunchError(self.name, f"can't open {target}: {exc}") from exc
        return True


APP_TYPES = {
    KIND_DOWNLOADABLE: AppDownloadable,
    KIND_INSTALLABLE: AppInstallable,
    KIND_LOCAL: AppLocal,
    KIND_OPEN: AppOpen,
}
