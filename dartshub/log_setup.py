#===============================================================================
#  Darts_Hub_Core | log_setup.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Console + rotating file logging. Known password-like argument values are
#  masked in every record before it reaches a handler.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional, Set

from .argument import mask_secret
from .constants import LOG_FILE_NAME

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class SensitiveValueFilter(logging.Filter):
    def __init__(self):
        super().__init__()
        self._values: Set[str] = set()
        self._lock = threading.Lock()

    def register(self, values: Iterable[str]) -> None:
        with self._lock:
            self._values.update(v for v in values if v)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def mask(self, text: str) -> str:
        with self._lock:
            # longest first, so a secret containing another one is masked whole
            values = sorted(self._values, key=len, reverse=True)
        for v in values:
            if v in text:
                text = text.replace(v, mask_secret(v))
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if self._values:
            msg = record.getMessage()
            masked = self.mask(msg)
            if masked != msg:
                record.msg = masked
                record.args = None
        return True


sensitive_filter = SensitiveValueFilter()


def setup_logging(log_dir: Optional[Path] = None, level: str = "INFO") -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for h in list(root.handlers):
        if getattr(h, "_dartshub", False):
            root.removeHandler(h)
            h.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_dir / LOG_FILE_NAME, maxBytes=2_000_000,
                                            backupCount=3, encoding="utf-8"))
    for h in handlers:
        h._dartshub = True
        h.setFormatter(formatter)
        h.addFilter(sensitive_filter)
        root.addHandler(h)
    return root
