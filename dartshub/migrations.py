#===============================================================================
#  Darts_Hub_Core | migrations.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Catalog upgrades. Each catalog file has an ordered list of small steps that
#  run on the raw JSON records on every load, before anything is built from
#  them. A step inspects the current shape and only acts when the record still
#  looks old, so the whole list can be re-run any number of times.
#
#  There is no version counter: the data itself is the version.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from . import defaults
from .argument import BOOL_MAPPING
from .constants import (
    APPS_DOWNLOADABLE_FILE,
    APPS_INSTALLABLE_FILE,
    APPS_LOCAL_FILE,
    APPS_OPEN_FILE,
    PROFILES_FILE,
)

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


@dataclass
class MigrationContext:
    platform_key: str
    app_names: Set[str] = field(default_factory=set)   # filled before profiles are migrated


Step = Callable[[List[Record], MigrationContext], bool]


# ----------------------------
# record helpers
# ----------------------------
def find_record(records: List[Record], name: str) -> Optional[Record]:
    for r in records:
        if isinstance(r, dict) and r.get("name") == name:
            return r
    return None


def arguments_of(record: Optional[Record]) -> Optional[List[Record]]:
    if not record:
        return None
    cfg = record.get("configuration")
    if not isinstance(cfg, dict) or not isinstance(cfg.get("arguments"), list):
        return None
    return cfg["arguments"]


def find_argument(args: Optional[List[Record]], name: str) -> Optional[Record]:
    for a in args or []:
        if isinstance(a, dict) and a.get("name") == name:
            return a
    return None


def remove_arguments(args: Optional[List[Record]], *names: str) -> bool:
    if not args:
        return False
    before = len(args)
    args[:] = [a for a in args if not (isinstance(a, dict) and a.get("name") in names)]
    return len(args) != before


def add_missing_arguments(args: Optional[List[Record]], wanted) -> bool:
    if args is None:
        return False
    changed = False
    for argument in wanted:
        if find_argument(args, argument.name) is None:
            args.append(argument.to_dict())
            changed = True
    return changed


# ----------------------------
# apps-downloadable
# ----------------------------
def remove_autodarts_bot(records: List[Record], ctx: MigrationContext) -> bool:
    before = len(records)
    records[:] = [r for r in records if not (isinstance(r, dict) and r.get("name") == "autodarts-bot")]
    return len(records) != before


def add_autodarts_wled(records: List[Record], ctx: MigrationContext) -> bool:
    if find_record(records, "autodarts-wled") is not None:
        return False
    for app in defaults.default_downloadable(ctx.platform_key):
        if app.name == "autodarts-wled":
            records.append(app.to_dict())
            return True
    return False


def caller_bool_mappings(records: List[Record], ctx: MigrationContext) -> bool:
    args = arguments_of(find_record(records, "autodarts-caller"))
    changed = False
    for name in ("R", "L", "E", "PCC"):
        a = find_argument(args, name)
        if a is not None and str(a.get("type", "")).lower() == "bool" and not a.get("valueMapping"):
            a["valueMapping"] = dict(BOOL_MAPPING)
            changed = True
    return changed


def remove_caller_wtt(records: List[Record], ctx: MigrationContext) -> bool:
    return remove_arguments(arguments_of(find_record(records, "autodarts-caller")), "WTT")


def caller_ambient_to_float(records: List[Record], ctx: MigrationContext) -> bool:
    a = find_argument(arguments_of(find_record(records, "autodarts-caller")), "A")
    if a is None or str(a.get("type", "")).lower() != "bool":
        return False
    value = a.get("value")
    if value == "True":
        a["value"] = "1.0"
    elif value == "False":
        a["value"] = "0.0"
    a["type"] = "float[0.0..1.0]"
    a.pop("valueMapping", None)
    return True


def rename_caller_acc(records: List[Record], ctx: MigrationContext) -> bool:
    args = arguments_of(find_record(records, "autodarts-caller"))
    acc = find_argument(args, "ACC")
    if acc is None:
        return False
    if find_argument(args, "AAC") is None:
        acc["name"] = "AAC"
    else:
        remove_arguments(args, "ACC")
    return True


def add_missing_caller_arguments(records: List[Record], ctx: MigrationContext) -> bool:
    return add_missing_arguments(arguments_of(find_record(records, "autodarts-caller")),
                                 defaults.caller_arguments())


def widen_caller_dll(records: List[Record], ctx: MigrationContext) -> bool:
    a = find_argument(arguments_of(find_record(records, "autodarts-caller")), "DLL")
    if a is None or a.get("type") == "int[0..1000]":
        return False
    a["type"] = "int[0..1000]"
    return True


def extern_host_port_to_connection(records: List[Record], ctx: MigrationContext) -> bool:
    args = arguments_of(find_record(records, "autodarts-extern"))
    changed = remove_arguments(args, "host_port")
    if args is not None and find_argument(args, "connection") is None:
        args.insert(0, {"name": "connection", "type": "string", "nameHuman": "Connection", "section": "Service"})
        changed = True
    return changed


def extern_chat_defaults(records: List[Record], ctx: MigrationContext) -> bool:
    args = arguments_of(find_record(records, "autodarts-extern"))
    changed = False
    for name, text in (("lidarts_chat_message_start", defaults.EXTERN_CHAT_START),
                       ("lidarts_chat_message_end", defaults.EXTERN_CHAT_END)):
        a = find_argument(args, name)
        if a is not None and not a.get("value"):
            a["value"] = text
            changed = True
    return changed


def wled_remove_deprecated(records: List[Record], ctx: MigrationContext) -> bool:
    return remove_arguments(arguments_of(find_record(records, "autodarts-wled")),
                            "-I", "-P", "HSO", "HS", "BSSOS")


def add_missing_wled_arguments(records: List[Record], ctx: MigrationContext) -> bool:
    return add_missing_arguments(arguments_of(find_record(records, "autodarts-wled")),
                                 defaults.wled_arguments())


def widen_wled_duration(records: List[Record], ctx: MigrationContext) -> bool:
    a = find_argument(arguments_of(find_record(records, "autodarts-wled")), "DU")
    if a is None or a.get("type") != "int[0..10]":
        return False
    a["type"] = "int[0..1000]"
    return True


def wled_strip_scheme(records: List[Record], ctx: MigrationContext) -> bool:
    a = find_argument(arguments_of(find_record(records, "autodarts-wled")), "WEPS")
    if a is None or not a.get("value"):
        return False
    stripped = str(a["value"]).replace("http://", "").replace("https://", "")
    if stripped == a["value"]:
        return False
    a["value"] = stripped
    return True


def pin_download_urls(records: List[Record], ctx: MigrationContext) -> bool:
    changed = False
    for r in records:
        if not isinstance(r, dict):
            continue
        url = defaults.pinned_download_url(str(r.get("name", "")), ctx.platform_key)
        if url and r.get("downloadUrl") != url:
            r["downloadUrl"] = url
            changed = True
    return changed


def backfill_custom_name(records: List[Record], ctx: MigrationContext) -> bool:
    changed = False
    for r in records:
        if isinstance(r, dict) and r.get("name") and not r.get("customName"):
            r["customName"] = r["name"]
            changed = True
    return changed


# ----------------------------
# profiles
# ----------------------------
def remove_bot_from_profiles(records: List[Record], ctx: MigrationContext) -> bool:
    changed = False
    for p in records:
        apps = p.get("apps") if isinstance(p, dict) else None
        if isinstance(apps, dict) and "autodarts-bot" in apps:
            del apps["autodarts-bot"]
            changed = True
    return changed


def add_wled_to_profiles(records: List[Record], ctx: MigrationContext) -> bool:
    if "autodarts-wled" not in ctx.app_names:
        return False
    changed = False
    for p in records:
        apps = p.get("apps") if isinstance(p, dict) else None
        if isinstance(apps, dict) and "autodarts-wled" not in apps:
            apps["autodarts-wled"] = {}
            changed = True
    return changed


MIGRATIONS: Dict[str, List[Step]] = {
    APPS_DOWNLOADABLE_FILE: [
        remove_autodarts_bot,
        add_autodarts_wled,
        caller_bool_mappings,
        remove_caller_wtt,
        caller_ambient_to_float,
        rename_caller_acc,
        add_missing_caller_arguments,
        widen_caller_dll,
        extern_host_port_to_connection,
        extern_chat_defaults,
        wled_remove_deprecated,
        add_missing_wled_arguments,
        widen_wled_duration,
        wled_strip_scheme,
        pin_download_urls,
        backfill_custom_name,
    ],
    APPS_INSTALLABLE_FILE: [pin_download_urls, backfill_custom_name],
    APPS_LOCAL_FILE: [backfill_custom_name],
    APPS_OPEN_FILE: [backfill_custom_name],
    PROFILES_FILE: [remove_bot_from_profiles, add_wled_to_profiles],
}


def run_migrations(file: str, records: List[Record], ctx: MigrationContext) -> Tuple[List[Record], List[str]]:
    """Run every step registered for file on a copy of records.

    Returns the upgraded records and the names of the steps that changed something.
    """
    work = copy.deepcopy(records)
    applied: List[str] = []
    for step in MIGRATIONS.get(file, []):
        if step(work, ctx):
            applied.append(step.__name__)
    if applied:
        logger.info("%s: applied migrations %s", file, ", ".join(applied))
    return work, applied
