#===============================================================================
#  Darts_Hub_Core | constants.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Central place for catalog file names, network timeouts, retry defaults and
#  release endpoints.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

APP_TITLE = "darts-hub"
APP_VERSION = "b1.2.7"

# --- Catalog files (one JSON record-array each) ---
APPS_DOWNLOADABLE_FILE = "apps-downloadable.json"
APPS_INSTALLABLE_FILE = "apps-installable.json"
APPS_LOCAL_FILE = "apps-local.json"
APPS_OPEN_FILE = "apps-open.json"
PROFILES_FILE = "profiles.json"
SETTINGS_FILE = "settings.json"

BASE_DIR_ENV = "DARTSHUB_HOME"
LOG_DIR_NAME = "logs"
LOG_FILE_NAME = "dartshub.log"
UPDATE_DIR_NAME = "updates"

# --- Argument model ---
ARGUMENT_ERROR_KEY = "ArgumentValidateParse-Error"
VERSION_PLACEHOLDER = "***VERSION***"
PASSWORD_INDICATORS = ("password", "pass", "pwd", "secret", "key", "token", "auth")
MASK_CHAR = "*"
MASK_MAX_LEN = 8

# --- Process monitor ---
MAX_APP_MONITOR_ENTRIES = 600

# --- Network ---
HEAD_TIMEOUT = 4.0
API_TIMEOUT = 10.0
DOWNLOAD_TIMEOUT = (10.0, 60.0)   # (connect, read)
DOWNLOAD_CHUNK_SIZE = 1024 * 256
DOWNLOAD_JOIN_TIMEOUT = 5.0    # wait for a superseded download worker
REQUEST_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/74.0.3729.169 Safari/537.36"
)

RETRY_MAX_ATTEMPTS = 3
RETRY_BASE_DELAY = 2.0
RETRY_MAX_DELAY = 30.0

# --- Self-update ---
RELEASE_REPO = "lbormann/darts-hub"
RELEASE_DOWNLOAD_URL = f"https://github.com/{RELEASE_REPO}/releases/download"
RELEASE_LATEST_API = f"https://api.github.com/repos/{RELEASE_REPO}/releases/latest"
RELEASES_API = f"https://api.github.com/repos/{RELEASE_REPO}/releases"
RELEASE_CHANGELOG_URL = f"https://raw.githubusercontent.com/{RELEASE_REPO}/main/CHANGELOG.md"
UNKNOWN_VERSION = "vx.x.x"

# --- Installer ---
INSTALLER_ARGUMENTS = ["/qb", "ALLUSERS=1"]
