"""Validator — checks a payload against an action's schema descriptor.

Invariants:
    - validate() is PURE: no IO, never mutates the caller's payload
    - No schema means the action accepts any payload
    - Coercion is opt-in; the default is strict (a "5" is not an integer)
    - Coercion only touches top-level string values whose declared type is
      integer, number, or boolean; boolean subschemas (`true`) are skipped and
      anything it cannot convert is left as-is so the engine reports it as invalid

Design Decisions:
    - Engine-agnostic: the descriptor does the work, this module only fixes the
      no-schema and non-dict cases so every engine sees the same contract
"""

import copy
import math
import re
from typing import Any

from restrpc.core.contracts import SchemaDescriptor
from restrpc.core.validation_result import Valid, ValidationResult

_INT_RE = re.compile(r"^[+-]?\d+$")
_TRUE = frozenset({"true", "1", "yes"})
_FALSE = frozenset({"false", "0", "no"})


def validate(
    schema: SchemaDescriptor | None, payload: Any, coerce: bool = False,
) -> ValidationResult:
    """Validate payload against schema. Returns Valid(normalized) or Invalid."""
    if payload is None:
        payload = {}
    if schema is None:
        return Valid(copy.deepcopy(payload))
    return schema.validate(copy.deepcopy(payload), coerce=coerce)


def coerce_scalars(properties: dict[str, dict], payload: dict) -> dict:
    """Convert string values to their declared scalar type where unambiguous."""
    result = dict(payload)
    for name, value in payload.items():
        prop = properties.get(name)
        if not isinstance(value, str) or not isinstance(prop, dict):
            continue
        declared = prop.get("type")
        types = declared if isinstance(declared, list) else [declared]
        for json_type in types:
            converted = _coerce_one(json_type, value)
            if converted is not None:
                result[name] = converted
                break
    return result


def _coerce_one(json_type: str | None, value: str) -> Any:
    text = value.strip()
    if json_type == "integer":
        return int(text) if _INT_RE.match(text) else None
    if json_type == "number":
        if _INT_RE.match(text):
            return int(text)
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    if json_type == "boolean":
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return None
