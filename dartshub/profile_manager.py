#===============================================================================
#  Darts_Hub_Core | profile_manager.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Owns the app catalog (four descriptor files) and the profiles file:
#    - missing file  -> built-in defaults, written at once
#    - present file  -> parse, migrate, build, write back the upgraded shape
#    - profiles are linked to apps by name; a dangling link fails the load
#  Also runs / closes apps for a profile and answers catalog queries.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import psutil

from . import defaults
from .apps import AppBase, AppDownloadable, AppInstallable, AppLocal, AppOpen
from .constants import (
    APPS_DOWNLOADABLE_FILE,
    APPS_INSTALLABLE_FILE,
    APPS_LOCAL_FILE,
    APPS_OPEN_FILE,
    PROFILES_FILE,
)
from .download_map import current_platform_key
from .errors import ConfigurationError, DartsHubError, ProfileLinkError
from .events import EventBus
from .log_setup import sensitive_filter
from .migrations import MigrationContext, run_migrations
from .profile import Profile, ProfileState

logger = logging.getLogger(__name__)

CATALOG_FILES = (APPS_DOWNLOADABLE_FILE, APPS_INSTALLABLE_FILE, APPS_LOCAL_FILE, APPS_OPEN_FILE)


class ProfileManager:
    def __init__(self, base_dir: Path, bus: Optional[EventBus] = None, platform_key: Optional[str] = None):
        self.base_dir = Path(base_dir)
        self.bus = bus if bus is not None else EventBus()
        self.platform_key = platform_key or current_platform_key()

        self.apps_downloadable: List[AppDownloadable] = []
        self.apps_installable: List[AppInstallable] = []
        self.apps_local: List[AppLocal] = []
        self.apps_open: List[AppOpen] = []
        self.profiles: List[Profile] = []

        # writers hold this; readers take list snapshots
        self._lock = threading.RLock()

    def path_for(self, file: str) -> Path:
        return self.base_dir / file

    # ----------------------------
    # load / persist
    # ----------------------------
    def load_apps_and_profiles(self) -> List[Profile]:
        """Load, migrate and persist the whole catalog. Raises ConfigurationError."""
        with self._lock:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            ctx = MigrationContext(platform_key=self.platform_key)

            downloadable = self._load_apps(APPS_DOWNLOADABLE_FILE, AppDownloadable,
                                           lambda: defaults.default_downloadable(self.platform_key), ctx)
            installable = self._load_apps(APPS_INSTALLABLE_FILE, AppInstallable,
                                          lambda: defaults.default_installable(self.platform_key), ctx)
            local = self._load_apps(APPS_LOCAL_FILE, AppLocal, defaults.default_local, ctx)
            opened = self._load_apps(APPS_OPEN_FILE, AppOpen, defaults.default_open, ctx)

            all_apps: List[AppBase] = [*downloadable, *installable, *local, *opened]
            by_name: Dict[str, AppBase] = {}
            for app in all_apps:
                if app.name in by_name:
                    raise ConfigurationError(self._file_of(app), f"Duplicate app name '{app.name}'")
                by_name[app.name] = app
            ctx.app_names = set(by_name)

            profiles = self._load_profiles(ctx, by_name)

            self.apps_downloadable = downloadable
            self.apps_installable = installable
            self.apps_local = local
            self.apps_open = opened
            self.profiles = profiles
            self._wire(all_apps)

            logger.info("Catalog loaded: %d apps, %d profiles", len(all_apps), len(profiles))
            return list(profiles)

    def _load_apps(self, file: str, cls, create_defaults: Callable[[], Sequence[AppBase]],
                   ctx: MigrationContext) -> List:
        path = self.path_for(file)
        if not path.exists():
            apps = list(create_defaults())
            self._write(path, [a.to_dict() for a in apps])
            logger.info("Created %s with %d default apps", file, len(apps))
            return apps

        records = self._read_records(path, file)
        migrated, _ = run_migrations(file, records, ctx)
        try:
            apps = [cls.from_dict(r) for r in migrated]
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            raise ConfigurationError(file, f"Invalid app record: {exc}") from exc
        self._write(path, [a.to_dict() for a in apps])
        return apps

    def _load_profiles(self, ctx: MigrationContext, by_name: Mapping[str, AppBase]) -> List[Profile]:
        path = self.path_for(PROFILES_FILE)
        if not path.exists():
            profiles = defaults.default_profiles(by_name.keys())
            self._write(path, [p.to_dict() for p in profiles])
            logger.info("Created %s with %d default profiles", PROFILES_FILE, len(profiles))
        else:
            records = self._read_records(path, PROFILES_FILE)
            migrated, _ = run_migrations(PROFILES_FILE, records, ctx)
            try:
                profiles = [Profile.from_dict(r) for r in migrated]
            except (ValueError, TypeError, AttributeError) as exc:
                raise ConfigurationError(PROFILES_FILE, f"Invalid profile record: {exc}") from exc

        for profile in profiles:
            for app_name, state in profile.apps.items():
                app = by_name.get(app_name)
                if app is None:
                    raise ProfileLinkError(PROFILES_FILE, profile.name, app_name)
                state.app = app

        self._write(path, [p.to_dict() for p in profiles])
        return profiles

    def _wire(self, apps: Sequence[AppBase]) -> None:
        for app in apps:
            app.bus = self.bus
            if isinstance(app, AppDownloadable):
                app.base_path = self.base_dir
            sensitive_filter.register(app.password_values())

    @staticmethod
    def _read_records(path: Path, file: str) -> List[dict]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(file, f"Can't read catalog file: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise ConfigurationError(file, "Expected an array of objects")
        return data

    @staticmethod
    def _write(path: Path, records: List[dict]) -> None:
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(records, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        os.replace(tmp, path)

    def _file_of(self, app: AppBase) -> str:
        return {
            AppInstallable: APPS_INSTALLABLE_FILE,
            AppDownloadable: APPS_DOWNLOADABLE_FILE,
            AppLocal: APPS_LOCAL_FILE,
            AppOpen: APPS_OPEN_FILE,
        }.get(type(app), "catalog")

    def store_apps(self) -> None:
        with self._lock:
            self._write(self.path_for(APPS_DOWNLOADABLE_FILE), [a.to_dict() for a in self.apps_downloadable])
            self._write(self.path_for(APPS_INSTALLABLE_FILE), [a.to_dict() for a in self.apps_installable])
            self._write(self.path_for(APPS_LOCAL_FILE), [a.to_dict() for a in self.apps_local])
            self._write(self.path_for(APPS_OPEN_FILE), [a.to_dict() for a in self.apps_open])
            self._write(self.path_for(PROFILES_FILE), [p.to_dict() for p in self.profiles])
            sensitive_filter.register(v for a in self.get_apps() for v in a.password_values())
        logger.info("Catalog stored in %s", self.base_dir)

    def delete_configuration_file(self, file: str) -> None:
        path = self.path_for(file)
        if path.exists():
            path.unlink()
            logger.info("Deleted %s", path)

    # ----------------------------
    # execution
    # ----------------------------
    def run_profile(self, profile: Optional[Profile]) -> bool:
        """Run every tagged app of the profile (ordered by display name). True if all run."""
        if profile is None:
            return False
        logger.info("Running profile '%s'", profile.name)
        all_running = True
        states = sorted(profile.tagged_states(), key=lambda s: (s.app.custom_name or s.app.name).lower())
        for state in states:
            app = state.app
            try:
                if not app.run(state.runtime_arguments):
                    all_running = False
            except (DartsHubError, OSError, psutil.Error) as exc:
                all_running = False
                logger.error("Running failed for app: %s - %s", app.name, exc)
                self.bus.process_failed.emit(app, str(exc))
        return all_running

    def close_apps(self) -> List[str]:
        """Close every app; returns the names that could not be closed."""
        failed: List[str] = []
        for app in self.get_apps():
            try:
                if not app.close():
                    failed.append(app.name)
            except (DartsHubError, OSError, psutil.Error) as exc:
                failed.append(app.name)
                logger.error("Closing failed for app: %s - %s", app.name, exc)
        return failed

    # ----------------------------
    # queries
    # ----------------------------
    def get_profiles(self) -> List[Profile]:
        return list(self.profiles)

    def get_apps(self) -> List[AppBase]:
        return [*self.apps_downloadable, *self.apps_installable, *self.apps_local, *self.apps_open]

    def find_app(self, name: str) -> Optional[AppBase]:
        for app in self.get_apps():
            if app.name == name:
                return app
        return None

    def find_profile(self, name: str) -> Optional[Profile]:
        for p in self.profiles:
            if p.name == name:
                return p
        return None

    def tagged_profile(self) -> Optional[Profile]:
        for p in self.profiles:
            if p.is_tagged_for_start:
                return p
        return None

    def tag_profile_for_start(self, profile: Optional[Profile]) -> None:
        """At most one profile is tagged; None untags all."""
        with self._lock:
            for p in self.profiles:
                p.is_tagged_for_start = p is profile

    def argument_string(self, app: AppBase, runtime_arguments: Optional[Mapping[str, str]] = None,
                        masked: bool = True) -> str:
        return app.compose_arguments(runtime_arguments, masked=masked, notify=False) or ""

    def executable_path(self, app: AppBase) -> Optional[str]:
        return app.run_executable()

    def set_tagged_for_start(self, profile: Profile, app_name: str, value: bool) -> bool:
        """Set a profile entry's start flag; returns the effective flag (required entries stay on)."""
        with self._lock:
            state: Optional[ProfileState] = profile.apps.get(app_name)
            if state is None:
                raise KeyError(f"Profile '{profile.name}' has no app '{app_name}'")
            state.tagged_for_start = value
            return state.tagged_for_start

    def refresh_running_states(self) -> Dict[str, bool]:
        return {app.name: app.is_running() for app in self.get_apps()}
