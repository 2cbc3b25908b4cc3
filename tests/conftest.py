"""Shared fixtures for the dartshub core tests.

- a session QCoreApplication so bus signals can be emitted
- an EventBus plus a recorder subscribed to every signal
- tmp_path based catalog directories
- a fake process table for tree termination
- network access is blocked; tests patch the boundaries they need
"""

import functools
from pathlib import Path
from typing import Dict, List

import pytest
import requests
from PySide6.QtCore import QCoreApplication

from dartshub.events import EventBus
from dartshub.profile_manager import ProfileManager

PLATFORM = "windows-x64"


class BusRecorder:
    """Collects (signal name, args) for every notification on a bus."""

    def __init__(self, bus: EventBus):
        self.events: List[tuple] = []
        for name, sig in bus.signals():
            sig.connect(functools.partial(self._record, name))

    def _record(self, name, *args):
        self.events.append((name, args))

    def names(self) -> List[str]:
        return [n for n, _ in self.events]

    def of(self, name: str) -> List[tuple]:
        return [args for n, args in self.events if n == name]


class FakeProcessTable:
    """pid -> parent pid; kill() removes the pid and records the order."""

    def __init__(self, parents: Dict[int, int]):
        self.parents = dict(parents)
        self.killed: List[int] = []

    def list_pids(self):
        return list(self.parents)

    def parent_of(self, pid: int):
        return self.parents.get(pid)

    def kill(self, pid: int) -> None:
        self.killed.append(pid)
        self.parents.pop(pid, None)


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def bus(qapp):
    return EventBus()


@pytest.fixture
def recorder(bus):
    return BusRecorder(bus)


@pytest.fixture
def catalog_dir(tmp_path) -> Path:
    d = tmp_path / "hub"
    d.mkdir()
    return d


@pytest.fixture
def manager(catalog_dir, bus):
    return ProfileManager(catalog_dir, bus, platform_key=PLATFORM)


@pytest.fixture
def fake_table():
    return FakeProcessTable


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    def blocked(*args, **kwargs):
        raise RuntimeError("network access is disabled in tests")

    monkeypatch.setattr(requests.sessions.Session, "request", blocked)
