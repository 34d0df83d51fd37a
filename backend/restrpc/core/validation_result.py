"""Validation Result — outcome of checking one payload against one schema.

Invariants:
    - Valid carries the normalized payload handlers receive (never the raw one)
    - Invalid.missing lists required fields absent from the payload, in schema order
    - Invalid.invalid maps each present-but-wrong field to one reason
    - A field never appears in both missing and invalid
"""

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Valid:
    payload: Any


@dataclass(frozen=True)
class Invalid:
    missing: list[str] = field(default_factory=list)
    invalid: dict[str, str] = field(default_factory=dict)

    def to_data(self) -> dict:
        return {"missing": list(self.missing), "invalid": dict(self.invalid)}


ValidationResult = Union[Valid, Invalid]
