#===============================================================================
#  Darts_Hub_Core | download_map.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Per OS / architecture download URL templates with a version placeholder.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass, field
from typing import Dict, Optional

from .constants import VERSION_PLACEHOLDER

OS_NAMES = ("windows", "linux", "mac")
ARCH_NAMES = ("x64", "x86", "arm64", "arm")

_MACHINE_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "arm": "arm",
}


def current_os() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "mac"
    return "linux"


def current_platform_key() -> str:
    """e.g. "windows-x64", "linux-arm64", "mac-arm64"."""
    arch = _MACHINE_ALIASES.get(platform.machine().lower(), "x64")
    return f"{current_os()}-{arch}"


@dataclass
class DownloadMap:
    urls: Dict[str, str] = field(default_factory=dict)   # platform key -> url template
    version_pattern: str = VERSION_PLACEHOLDER

    def url_for(self, version: str, platform_key: Optional[str] = None) -> Optional[str]:
        template = self.urls.get(platform_key or current_platform_key())
        if not template:
            return None
        return template.replace(self.version_pattern, version)
