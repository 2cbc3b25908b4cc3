#===============================================================================
#  Darts_Hub_Core | argument.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  A single typed, named configuration value of an app. Knows how to parse its
#  type string ("int[0..10]", "selection[a,b]"), validate a value against it,
#  map logical values to command-line tokens and mask password-like values.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .constants import MASK_CHAR, MASK_MAX_LEN, PASSWORD_INDICATORS
from .errors import ArgumentError

TYPE_STRING = "string"
TYPE_FLOAT = "float"
TYPE_INT = "int"
TYPE_BOOL = "bool"
TYPE_FILE = "file"
TYPE_PATH = "path"
TYPE_PASSWORD = "password"
TYPE_SELECTION = "selection"

RANGED_KINDS = (TYPE_STRING, TYPE_FLOAT, TYPE_INT)
PLAIN_KINDS = (TYPE_BOOL, TYPE_FILE, TYPE_PATH, TYPE_PASSWORD)

RANGE_DELIMITER = ".."

_TYPE_RE = re.compile(r"^([a-z]+)(?:\[(.*)\])?$")

TRUE_WORDS = ("true", "1", "yes", "y")
FALSE_WORDS = ("false", "0", "no", "n")


@dataclass(frozen=True)
class ArgType:
    """Parsed form of an argument type string."""
    kind: str
    low: Optional[str] = None
    high: Optional[str] = None
    choices: Tuple[str, ...] = ()

    @property
    def has_range(self) -> bool:
        return self.low is not None and self.high is not None


def parse_type(type_str: str) -> ArgType:
    """Split "int[0..10]" into kind + constraint. Raises ValueError on a bad type."""
    m = _TYPE_RE.match((type_str or "").strip().lower())
    if not m:
        raise ValueError(f"Argument-Type '{type_str}' is invalid")
    kind, constraint = m.group(1), m.group(2)

    if kind in RANGED_KINDS:
        if constraint is None:
            return ArgType(kind)
        parts = constraint.split(RANGE_DELIMITER)
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ValueError(f"Argument-Type '{type_str}' has an invalid range")
        low, high = parts[0].strip(), parts[1].strip()
        conv = float if kind == TYPE_FLOAT else int
        try:
            if conv(low) > conv(high):
                raise ValueError(f"Argument-Type '{type_str}' has an empty range")
        except ValueError as exc:
            raise ValueError(f"Argument-Type '{type_str}' is invalid: {exc}") from exc
        return ArgType(kind, low=low, high=high)

    if kind == TYPE_SELECTION:
        choices = tuple(c.strip() for c in (constraint or "").split(",") if c.strip())
        return ArgType(kind, choices=choices)

    if kind in PLAIN_KINDS and constraint is None:
        return ArgType(kind)

    raise ValueError(f"Argument-Type '{type_str}' is invalid")


def parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in TRUE_WORDS:
        return True
    if v in FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean: {value}")


def invariant_float(value: str) -> str:
    return value.strip().replace(",", ".")


def parse_float(value: str) -> float:
    # culture-invariant; tolerate a comma decimal separator
    return float(invariant_float(value))


def mask_secret(value: Optional[str]) -> str:
    """First character followed by at most 8 mask chars; short values are fully masked."""
    if not value:
        return ""
    if len(value) <= 3:
        return MASK_CHAR * 3
    return value[0] + MASK_CHAR * min(len(value) - 1, MASK_MAX_LEN)


@dataclass
class Argument:
    name: str
    type: str
    required: bool = False
    section: Optional[str] = None
    description: Optional[str] = None
    name_human: Optional[str] = None
    required_on_argument: Optional[str] = None   # "otherName=value"
    empty_allowed_on_required: bool = False
    is_runtime_argument: bool = False
    is_multi: bool = False
    value: Optional[str] = None
    value_mapping: Optional[Dict[str, str]] = None

    # not persisted
    is_value_changed: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        self.type = (self.type or "").lower()
        if not self.name_human:
            self.name_human = self.name

    # ----------------------------
    # type / value
    # ----------------------------
    @property
    def arg_type(self) -> ArgType:
        return parse_type(self.type)

    @property
    def kind(self) -> str:
        try:
            return self.arg_type.kind
        except ValueError:
            return "invalidType"

    def validate_type(self) -> None:
        try:
            parse_type(self.type)
        except ValueError as exc:
            raise ArgumentError(self, str(exc)) from exc

    def set_value(self, value: Optional[str]) -> None:
        """Store a new value; flags the change only when replacing a non-empty value."""
        if self.value and value and value != self.value:
            self.is_value_changed = True
        self.value = value

    def normalized(self, value: str) -> str:
        """Value as written to the command line: floats always use a dot separator."""
        if self.kind == TYPE_FLOAT:
            return invariant_float(value)
        return value

    def mapped_value(self, value: Optional[str] = None) -> Optional[str]:
        v = self.value if value is None else value
        if self.value_mapping and v in self.value_mapping:
            return self.value_mapping[v]
        return v

    def check_value(self, value: Optional[str]) -> None:
        """Check a non-empty value against the type constraint. Raises ArgumentError."""
        try:
            t = parse_type(self.type)
        except ValueError as exc:
            raise ArgumentError(self, str(exc)) from exc

        v = value or ""
        try:
            if t.kind == TYPE_STRING:
                if t.has_range and not (int(t.low) <= len(v) <= int(t.high)):
                    raise ValueError(f"Out of range ({t.low} to {t.high})")
            elif t.kind == TYPE_INT:
                n = int(v.strip())
                if t.has_range and not (int(t.low) <= n <= int(t.high)):
                    raise ValueError(f"Out of range ({t.low} to {t.high})")
            elif t.kind == TYPE_FLOAT:
                f = parse_float(v)
                if f != f:
                    raise ValueError("NaN")
                if t.has_range and not (parse_float(t.low) <= f <= parse_float(t.high)):
                    raise ValueError(f"Out of range ({t.low} to {t.high})")
            elif t.kind == TYPE_BOOL:
                # a mapping may translate bools to arbitrary tokens; the logical value must still be a bool
                parse_bool(v)
            elif t.kind in (TYPE_FILE, TYPE_PATH):
                if not v.strip() or "\x00" in v:
                    raise ValueError("not a valid path")
            elif t.kind == TYPE_SELECTION:
                if v not in t.choices:
                    raise ValueError("Out of selection")
            # password: no rules
        except ValueError as exc:
            raise ArgumentError(self, f"Invalid {t.kind}: {v}. {exc}") from exc

    def validate(self, value: Optional[str] = None, required: Optional[bool] = None) -> None:
        """Validate the stored (or given) value, including the required rule."""
        v = self.value if value is None else value
        req = self.required if required is None else required
        if not v:
            if req and not self.empty_allowed_on_required:
                raise ArgumentError(self, "is required")
            return
        self.check_value(v)

    # ----------------------------
    # password handling
    # ----------------------------
    def is_password_like(self) -> bool:
        if TYPE_PASSWORD in self.type:
            return True
        name = (self.name or "").lower()
        human = (self.name_human or "").lower()
        return any(ind in name or ind in human for ind in PASSWORD_INDICATORS)

    def masked(self, value: Optional[str]) -> Optional[str]:
        if value and self.is_password_like():
            return mask_secret(value)
        return value

    # ----------------------------
    # persistence
    # ----------------------------
    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.required:
            d["required"] = True
        if self.section:
            d["section"] = self.section
        if self.description:
            d["description"] = self.description
        if self.name_human and self.name_human != self.name:
            d["nameHuman"] = self.name_human
        if self.required_on_argument:
            d["requiredOnArgument"] = self.required_on_argument
        if self.empty_allowed_on_required:
            d["emptyAllowedOnRequired"] = True
        if self.is_runtime_argument:
            d["isRuntimeArgument"] = True
        if self.is_multi:
            d["isMulti"] = True
        # runtime values are supplied per launch and never stored
        if self.value and not self.is_runtime_argument:
            d["value"] = self.value
        if self.value_mapping:
            d["valueMapping"] = dict(self.value_mapping)
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Argument":
        if "name" not in d or "type" not in d:
            raise ValueError(f"argument record needs 'name' and 'type': {d!r}")
        value = d.get("value")
        return Argument(
            name=str(d["name"]),
            type=str(d["type"]),
            required=bool(d.get("required", False)),
            section=d.get("section"),
            description=d.get("description"),
            name_human=d.get("nameHuman"),
            required_on_argument=d.get("requiredOnArgument"),
            empty_allowed_on_required=bool(d.get("emptyAllowedOnRequired", False)),
            is_runtime_argument=bool(d.get("isRuntimeArgument", False)),
            is_multi=bool(d.get("isMulti", False)),
            value=None if value is None else str(value),
            value_mapping=dict(d["valueMapping"]) if d.get("valueMapping") else None,
        )


BOOL_MAPPING: Dict[str, str] = {"True": "1", "False": "0"}


def bool_argument(name: str, name_human: str, section: str) -> Argument:
    return Argument(name=name, type=TYPE_BOOL, name_human=name_human, section=section,
                    value_mapping=dict(BOOL_MAPPING))


def multi_arguments(prefix: str, numbers: List[int], human: str, section: str) -> List[Argument]:
    """Build a numbered run of multi-value string arguments (S0..S180, A1..A12)."""
    return [
        Argument(name=f"{prefix}{i}", type=TYPE_STRING, is_multi=True,
                 name_human=f"{human}{i}", section=section)
        for i in numbers
    ]
