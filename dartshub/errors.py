#===============================================================================
#  Darts_Hub_Core | errors.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Exception types. Configuration errors halt startup; the rest are caught at
#  the app / operation boundary and turned into notifications.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

from typing import Any, Optional

from .constants import ARGUMENT_ERROR_KEY


class DartsHubError(Exception):
    pass


class ConfigurationError(DartsHubError):
    """A persisted catalog file could not be parsed or built."""

    def __init__(self, file: str, message: str):
        super().__init__(f"{file}: {message}")
        self.file = file
        self.message = message


class ProfileLinkError(ConfigurationError):
    def __init__(self, file: str, profile: str, app: str):
        super().__init__(file, f"Profile '{profile}' references unknown app '{app}'")
        self.profile = profile
        self.app = app


class ArgumentError(DartsHubError):
    """Raised when an argument value does not satisfy its type / requirement."""

    def __init__(self, argument: Any, message: str):
        self.argument = argument
        self.reason = message
        label = getattr(argument, "name_human", None) or getattr(argument, "name", "?")
        super().__init__(f"{ARGUMENT_ERROR_KEY}{label}: {message}")

    @property
    def detail(self) -> str:
        """Message without the error key, as shown to the user."""
        return str(self)[len(ARGUMENT_ERROR_KEY):]


class ProcessLaunchError(DartsHubError):
    def __init__(self, app_name: str, message: str):
        super().__init__(f"{app_name}: {message}")
        self.app_name = app_name


class RetryExhaustedError(DartsHubError):
    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(f"{operation} failed after {attempts} attempts. Last error: {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class OperationCancelled(DartsHubError):
    pass
