#===============================================================================
#  Darts_Hub_Core | settings.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Load/save of the manager's own settings (update behaviour, log level,
#  start profile, refresh interval) and resolution of the base directory.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import BASE_DIR_ENV, SETTINGS_FILE

logger = logging.getLogger(__name__)


def default_settings() -> Dict[str, Any]:
    return {
        "skip_update_confirmation": False,
        "beta_tester": False,
        "check_updates_on_start": True,
        "log_level": "INFO",
        "start_profile": "",       # profile name to run on start ("" = tagged profile)
        "refresh_interval_ms": 1000,
    }


def resolve_base_dir(env: Optional[Dict[str, str]] = None) -> Path:
    """DARTSHUB_HOME if set, else the directory of the entry script."""
    env = os.environ if env is None else env
    override = env.get(BASE_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser().resolve()
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    script = sys.argv[0] if sys.argv and sys.argv[0] else ""
    return Path(script).resolve().parent if script else Path.cwd()


def settings_path(base_dir: Path) -> Path:
    return Path(base_dir) / SETTINGS_FILE


def load_settings(path: Path) -> Dict[str, Any]:
    """Load settings from disk (or defaults)."""
    d = default_settings()
    if not path.exists():
        return d
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings %s: %s", path, exc)
        return d
    if not isinstance(data, dict):
        logger.warning("Ignoring settings %s: not an object", path)
        return d
    for k in d:
        if k not in data:
            data[k] = d[k]
    return data


def save_settings(path: Path, settings: Dict[str, Any]) -> None:
    """Persist settings to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
