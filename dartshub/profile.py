#===============================================================================
#  Darts_Hub_Core | profile.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Profiles: named, ordered bundles of app links with per-profile overrides
#  (required, tagged for start, runtime argument values).
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional


class ProfileState:
    def __init__(
        self,
        is_required: bool = False,
        tagged_for_start: bool = False,
        runtime_arguments: Optional[Dict[str, str]] = None,
    ):
        self.is_required = is_required
        self._tagged_for_start = tagged_for_start or is_required
        self.runtime_arguments: Dict[str, str] = dict(runtime_arguments or {})
        self.app = None  # resolved descriptor, linked by the manager

    @property
    def tagged_for_start(self) -> bool:
        return self._tagged_for_start or self.is_required

    @tagged_for_start.setter
    def tagged_for_start(self, value: bool) -> None:
        # a required app can't be untagged
        if self.is_required and not value:
            return
        self._tagged_for_start = bool(value)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.is_required:
            d["isRequired"] = True
        if self.tagged_for_start:
            d["taggedForStart"] = True
        if self.runtime_arguments:
            d["runtimeArguments"] = dict(self.runtime_arguments)
        return d

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> "ProfileState":
        d = d or {}
        runtime = d.get("runtimeArguments") or {}
        if not isinstance(runtime, dict):
            raise ValueError(f"runtimeArguments must be an object: {runtime!r}")
        return ProfileState(
            is_required=bool(d.get("isRequired", False)),
            tagged_for_start=bool(d.get("taggedForStart", False)),
            runtime_arguments={str(k): str(v) for k, v in runtime.items()},
        )


class Profile:
    def __init__(self, name: str, apps: Optional[Dict[str, ProfileState]] = None,
                 is_tagged_for_start: bool = False):
        self.name = name
        self.apps: Dict[str, ProfileState] = dict(apps or {})
        self.is_tagged_for_start = is_tagged_for_start

    def __repr__(self) -> str:
        return f"Profile({self.name!r}, apps={list(self.apps)})"

    def tagged_states(self):
        return [s for s in self.apps.values() if s.tagged_for_start]

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "apps": {name: state.to_dict() for name, state in self.apps.items()},
        }
        if self.is_tagged_for_start:
            d["isTaggedForStart"] = True
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Profile":
        if not d.get("name"):
            raise ValueError(f"profile record without 'name': {d!r}")
        apps = d.get("apps") or {}
        if not isinstance(apps, dict):
            raise ValueError(f"profile '{d['name']}': 'apps' must be an object")
        return Profile(
            name=str(d["name"]),
            apps={str(k): ProfileState.from_dict(v) for k, v in apps.items()},
            is_tagged_for_start=bool(d.get("isTaggedForStart", False)),
        )
