#===============================================================================
#  Darts_Hub_Core | process_helper.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Cross-platform process and file helpers used by apps and the updater:
#    - process discovery by name / pid (psutil)
#    - kill (attempted twice) and tree-aware termination
#    - remote / local file sizes, streaming download, archive extraction
#    - executable search and +x marking
#
#  On macOS children are not reliably taken down with their parent, so the
#  tree terminator walks the process table itself, resolving each parent pid
#  through libproc, and kills children before parents.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import shutil
import stat
import subprocess
import sys
import tarfile
import threading
import zipfile
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import unquote, urlparse

import psutil
import requests

from .constants import DOWNLOAD_CHUNK_SIZE, DOWNLOAD_TIMEOUT, HEAD_TIMEOUT, REQUEST_USER_AGENT
from .download_map import current_os
from .errors import OperationCancelled

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".zip", ".tar.gz", ".tgz", ".tar")


# ----------------------------
# files / downloads
# ----------------------------
def content_length(headers, default: int) -> int:
    try:
        return int(headers.get("Content-Length") or default)
    except (TypeError, ValueError):
        return default


def get_file_size_by_url(url: str, timeout: float = HEAD_TIMEOUT) -> int:
    """Content-Length of a HEAD request; -1 when the server does not tell."""
    r = requests.head(url, timeout=timeout, allow_redirects=True,
                      headers={"User-Agent": REQUEST_USER_AGENT})
    r.raise_for_status()
    return content_length(r.headers, -1)


def get_file_size_local(path: Path) -> int:
    """Size of a local file; -2 when it does not exist."""
    p = Path(path)
    return p.stat().st_size if p.is_file() else -2


def file_name_from_url(url: str) -> str:
    return unquote(urlparse(url).path.rstrip("/").split("/")[-1])


def remove_directory(directory: Path, create_after: bool = False) -> None:
    d = Path(directory)
    if d.exists():
        shutil.rmtree(d)
    if create_after:
        d.mkdir(parents=True, exist_ok=True)


def is_archive(path: Path) -> bool:
    return str(path).lower().endswith(ARCHIVE_SUFFIXES)


def download_file(
    url: str,
    dest: Path,
    on_progress: Optional[Callable[[int, int], None]] = None,
    cancel: Optional[threading.Event] = None,
    timeout=DOWNLOAD_TIMEOUT,
) -> Path:
    """Stream url into dest. Raises OperationCancelled when cancel is set mid-way."""
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    with requests.get(url, stream=True, timeout=timeout,
                      headers={"User-Agent": REQUEST_USER_AGENT}) as r:
        r.raise_for_status()
        total = content_length(r.headers, 0)
        received = 0
        with open(dest, "wb") as f:
            for chunk in r.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if cancel is not None and cancel.is_set():
                    raise OperationCancelled(url)
                if chunk:
                    f.write(chunk)
                    received += len(chunk)
                    if on_progress:
                        on_progress(received, total)
    return dest


def extract_archive(archive: Path, dest: Path) -> None:
    archive, dest = Path(archive), Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    name = archive.name.lower()
    if name.endswith(".zip"):
        with zipfile.ZipFile(archive, "r") as z:
            z.extractall(dest)
        return
    with tarfile.open(archive, "r:*") as t:
        if hasattr(tarfile, "data_filter"):
            t.extractall(dest, filter="data")
        else:
            t.extractall(dest)


def ensure_executable(path: Path) -> None:
    """chmod +x (no-op on Windows)."""
    if os.name == "nt":
        return
    p = Path(path)
    mode = p.stat().st_mode
    p.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def search_executable(directory: Path, os_name: Optional[str] = None) -> Optional[Path]:
    """First ".exe" on Windows, first extension-less file elsewhere."""
    d = Path(directory)
    if not d.is_dir():
        return None
    os_name = os_name or current_os()
    for p in sorted(d.rglob("*")):
        if not p.is_file():
            continue
        if os_name == "windows":
            if p.suffix.lower() == ".exe":
                return p
        elif p.suffix == "" and not p.name.startswith("."):
            return p
    return None


# ----------------------------
# processes
# ----------------------------
def run_logged(cmd: List[str], cwd: Path, log_file: Path, env: Optional[dict] = None) -> int:
    """Run a subprocess to completion, appending stdout/stderr to log_file. Returns the exit code."""
    with open(log_file, "a", encoding="utf-8", errors="ignore") as f:
        f.write(f"\n$ {' '.join(str(c) for c in cmd)}\n")
        f.flush()
        p = subprocess.Popen(
            [str(c) for c in cmd],
            cwd=str(cwd),
            stdout=f,
            stderr=subprocess.STDOUT,
            env=env,
            text=True,
        )
        return p.wait()


def is_process_running(pid: Optional[int]) -> bool:
    if not pid or pid <= 0:
        return False
    try:
        p = psutil.Process(pid)
        return p.is_running() and p.status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def find_pids_by_name(name: str) -> List[int]:
    stem = Path(name).stem.lower()
    if not stem:
        return []
    own = os.getpid()
    pids: List[int] = []
    for p in psutil.process_iter(attrs=["pid", "name"]):
        pname = (p.info.get("name") or "")
        if p.info["pid"] != own and Path(pname).stem.lower() == stem:
            pids.append(p.info["pid"])
    return pids


def kill_process(pid: int) -> None:
    """Kill pid; a second attempt follows immediately. A vanished process is not an error."""
    if not pid or pid <= 0:
        return
    for _ in range(2):
        try:
            psutil.Process(pid).kill()
        except psutil.NoSuchProcess:
            return


def kill_process_by_name(name: str) -> None:
    for _ in range(2):
        pids = find_pids_by_name(name)
        if current_os() == "mac":
            pids = list(reversed(pids))
        for pid in pids:
            kill_process(pid)


# ----------------------------
# tree termination
# ----------------------------
PROC_PIDTBSDINFO = 3


class _ProcBsdInfo(ctypes.Structure):
    _fields_ = [
        ("pbi_flags", ctypes.c_uint32),
        ("pbi_status", ctypes.c_uint32),
        ("pbi_xstatus", ctypes.c_uint32),
        ("pbi_pid", ctypes.c_uint32),
        ("pbi_ppid", ctypes.c_uint32),
        ("pbi_uid", ctypes.c_uint32),
        ("pbi_gid", ctypes.c_uint32),
        ("pbi_ruid", ctypes.c_uint32),
        ("pbi_rgid", ctypes.c_uint32),
        ("pbi_svuid", ctypes.c_uint32),
        ("pbi_svgid", ctypes.c_uint32),
        ("rfu_1", ctypes.c_uint32),
        ("pbi_comm", ctypes.c_char * 16),
        ("pbi_name", ctypes.c_char * 32),
        ("pbi_nfiles", ctypes.c_uint32),
        ("pbi_pgid", ctypes.c_uint32),
        ("pbi_pjobc", ctypes.c_uint32),
        ("e_tdev", ctypes.c_uint32),
        ("e_tpgid", ctypes.c_uint32),
        ("pbi_nice", ctypes.c_int32),
        ("pbi_start_tvsec", ctypes.c_uint64),
        ("pbi_start_tvusec", ctypes.c_uint64),
    ]


_libproc = None


def mac_parent_pid(pid: int) -> Optional[int]:
    """Parent pid as reported by libproc's proc_pidinfo; None if the query fails."""
    global _libproc
    if _libproc is None:
        _libproc = ctypes.CDLL(ctypes.util.find_library("proc") or "/usr/lib/libproc.dylib")
    info = _ProcBsdInfo()
    size = ctypes.sizeof(info)
    n = _libproc.proc_pidinfo(pid, PROC_PIDTBSDINFO, ctypes.c_uint64(0), ctypes.byref(info), size)
    if n != size:
        return None
    return int(info.pbi_ppid)


def _psutil_parent_pid(pid: int) -> Optional[int]:
    try:
        return psutil.Process(pid).ppid()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


class DirectTerminator:
    """Terminate pid and the children psutil reports for it, children first."""

    def __init__(self, kill: Callable[[int], None] = kill_process):
        self._kill = kill

    def terminate(self, pid: int) -> List[int]:
        try:
            children = [c.pid for c in psutil.Process(pid).children(recursive=True)]
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            children = []
        order = list(reversed(children)) + [pid]
        for p in order:
            self._kill(p)
        return order


class TreeTerminator:
    """Walk the whole process table and kill the descendants of pid, deepest first."""

    def __init__(
        self,
        list_pids: Callable[[], Iterable[int]] = psutil.pids,
        parent_of: Optional[Callable[[int], Optional[int]]] = None,
        kill: Callable[[int], None] = kill_process,
    ):
        self._list_pids = list_pids
        self._parent_of = parent_of or _mac_or_psutil_parent
        self._kill = kill

    def descendants_first(self, pid: int) -> List[int]:
        children: Dict[int, List[int]] = {}
        for p in self._list_pids():
            if p == pid:
                continue
            parent = self._parent_of(p)
            if parent is not None and parent != p:
                children.setdefault(parent, []).append(p)

        order: List[int] = []
        seen = {pid}

        def visit(node: int) -> None:
            for child in sorted(children.get(node, [])):
                if child in seen:
                    continue
                seen.add(child)
                visit(child)
            order.append(node)

        visit(pid)
        return order

    def terminate(self, pid: int) -> List[int]:
        order = self.descendants_first(pid)
        for p in order:
            self._kill(p)
        return order


def _mac_or_psutil_parent(pid: int) -> Optional[int]:
    try:
        ppid = mac_parent_pid(pid)
    except (OSError, AttributeError) as exc:
        logger.debug("libproc query failed for %s: %s", pid, exc)
        ppid = None
    return ppid if ppid is not None else _psutil_parent_pid(pid)


def select_terminator():
    if sys.platform == "darwin":
        return TreeTerminator()
    return DirectTerminator()


_terminator = select_terminator()


def set_terminator(terminator) -> None:
    global _terminator
    _terminator = terminator


def terminate_tree(pid: int) -> List[int]:
    """Terminate pid (and, where needed, its descendants first). Returns the kill order."""
    if not pid or pid <= 0:
        return []
    return _terminator.terminate(pid)
