#===============================================================================
#  Darts_Hub_Core | configuration.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Ordered set of Arguments plus the prefix/delimiter convention used to turn
#  them into a command line. Rendering is a pure function of the stored values
#  and the runtime overrides; it never writes back into the arguments.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .argument import Argument
from .errors import ArgumentError

logger = logging.getLogger(__name__)


def split_multi(value: str) -> List[str]:
    """Split a multi value on whitespace / line breaks; double quotes group an element."""
    lex = shlex.shlex(value, posix=True)
    lex.whitespace_split = True
    lex.commenters = ""
    lex.escape = ""
    lex.quotes = '"'
    try:
        return list(lex)
    except ValueError:
        # unbalanced quote
        return value.split()


def quote_token(value: str) -> str:
    if value == "" or any(c.isspace() for c in value) or '"' in value:
        return '"' + value.replace('"', '\\"') + '"'
    return value


@dataclass
class Configuration:
    prefix: str = "-"
    delimiter: str = " "
    arguments: List[Argument] = field(default_factory=list)
    is_raw: bool = False

    def __post_init__(self) -> None:
        seen = set()
        for a in self.arguments:
            if a.name in seen:
                raise ValueError(f"Duplicate argument name '{a.name}'")
            seen.add(a.name)

    # ----------------------------
    # lookup / edit
    # ----------------------------
    def argument(self, name: str) -> Optional[Argument]:
        for a in self.arguments:
            if a.name == name:
                return a
        return None

    def add_argument(self, argument: Argument) -> bool:
        """Append when no argument of that name exists. Returns True when added."""
        if self.argument(argument.name) is not None:
            return False
        self.arguments.append(argument)
        return True

    def remove_argument(self, name: str) -> Optional[Argument]:
        a = self.argument(name)
        if a is not None:
            self.arguments.remove(a)
        return a

    def is_changed(self) -> bool:
        """True if any argument value was changed since the last call. Resets the flags."""
        changed = any(a.is_value_changed for a in self.arguments)
        for a in self.arguments:
            a.is_value_changed = False
        return changed

    # ----------------------------
    # rendering
    # ----------------------------
    def effective_values(self, runtime_arguments: Optional[Mapping[str, str]] = None) -> Dict[str, Optional[str]]:
        runtime = runtime_arguments or {}
        values: Dict[str, Optional[str]] = {}
        for a in self.arguments:
            if a.is_runtime_argument and runtime.get(a.name):
                values[a.name] = runtime[a.name]
            else:
                values[a.name] = a.value
        return values

    def effective_required(self, argument: Argument, values: Mapping[str, Optional[str]]) -> bool:
        """Evaluate "other=value" against the effective values; plain required otherwise."""
        cond = argument.required_on_argument
        if not cond:
            return argument.required
        parts = cond.split("=")
        if len(parts) != 2 or parts[0] not in values:
            return argument.required
        return values[parts[0]] == parts[1]

    def render(self, runtime_arguments: Optional[Mapping[str, str]] = None, masked: bool = False) -> str:
        """Build the argument string.

        Raises ArgumentError when a required argument has no valid value; the
        caller reports that as "configuration required". Invalid optional
        values are dropped.
        """
        values = self.effective_values(runtime_arguments)
        if self.is_raw:
            return self._render_raw(values, masked)

        tokens: List[str] = []
        for a in self.arguments:
            value = values.get(a.name)
            if a.is_runtime_argument and not value:
                continue

            required = self.effective_required(a, values)
            if value:
                try:
                    a.check_value(value)
                except ArgumentError as exc:
                    if required:
                        raise
                    logger.warning("Ignoring invalid value of '%s': %s", a.name, exc.reason)
                    continue
            else:
                if not required:
                    continue
                if a.empty_allowed_on_required:
                    tokens.append(a.name)
                    continue
                raise ArgumentError(a, "is required")

            tokens.extend(self._tokens_for(a, value, masked))
        return " ".join(tokens)

    def _tokens_for(self, argument: Argument, value: str, masked: bool) -> List[str]:
        literal = argument.mapped_value(argument.normalized(value)) or ""
        elements = split_multi(literal) if argument.is_multi else [literal]
        out: List[str] = []
        for el in elements:
            shown = argument.masked(el) if masked else el
            out.append(f"{self.prefix}{argument.name}{self.delimiter}{quote_token(shown)}")
        return out

    def _render_raw(self, values: Mapping[str, Optional[str]], masked: bool) -> str:
        # raw: first argument is the target itself, the second (if any) the literal argument string
        if self.arguments:
            first = self.arguments[0]
            if not values.get(first.name) and first.required:
                raise ArgumentError(first, "is required")
        if len(self.arguments) != 2:
            return ""
        second = self.arguments[1]
        raw = values.get(second.name) or ""
        return (second.masked(raw) or "") if masked else raw

    # ----------------------------
    # persistence
    # ----------------------------
    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "prefix": self.prefix,
            "delimiter": self.delimiter,
            "arguments": [a.to_dict() for a in self.arguments],
        }
        if self.is_raw:
            d["isRaw"] = True
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Configuration":
        return Configuration(
            prefix=str(d.get("prefix", "")),
            delimiter=str(d.get("delimiter", "")),
            arguments=[Argument.from_dict(a) for a in d.get("arguments", [])],
            is_raw=bool(d.get("isRaw", False)),
        )
