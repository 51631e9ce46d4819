"""Declarative parameter schema.

The compandor's parameter contract is defined as a list of ParamDef objects.
ParamSchema wraps the list, hands out defaults, describes each param for the
command line and validates raw dicts coming from presets or flags.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ParamType(Enum):
    FLOAT = "float"
    INT = "int"
    CHOICE = "choice"


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    label: str = ""
    range: tuple | None = None  # (min, max) for continuous params
    choices: list[str] | None = None  # display names for CHOICE type


class ParamSchema:
    """Derives param dicts from a declarative param list."""

    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: p.default for p in self._params}

    def validate_and_clamp(self, raw: dict) -> dict:
        """Validate and clamp a raw params dict (e.g. from a preset file).

        Unknown keys are dropped. Values are type-cast and clamped to range.
        Choice params accept either an index or one of the display names.
        """
        result = {}
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue

            if p.type == ParamType.CHOICE:
                if isinstance(value, str) and p.choices and value in p.choices:
                    result[key] = p.choices.index(value)
                    continue
                try:
                    v = int(round(value))
                except (TypeError, ValueError):
                    continue
                result[key] = max(0, min(len(p.choices) - 1, v))

            elif p.type == ParamType.INT:
                try:
                    v = int(round(value))
                except (TypeError, ValueError):
                    continue
                if p.range:
                    lo, hi = p.range
                    v = max(lo, min(hi, v))
                result[key] = v

            else:
                try:
                    v = float(value)
                except (TypeError, ValueError):
                    continue
                if p.range:
                    lo, hi = p.range
                    v = max(lo, min(hi, v))
                result[key] = v

        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def help_text(self, key: str) -> str:
        """Label plus range or choices, for argparse help strings."""
        p = self._by_key[key]
        text = p.label or key
        if p.choices:
            return f"{text} ({', '.join(p.choices)})"
        if p.range:
            return f"{text}, {p.range[0]}-{p.range[1]}"
        return text
