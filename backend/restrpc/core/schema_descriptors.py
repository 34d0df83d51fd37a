"""Schema Descriptors — concrete validation engines behind SchemaDescriptor.

Invariants:
    - to_json_descriptor() returns the schema verbatim; discovery never executes it
    - missing = required fields absent from the payload (nested ones dotted: "address.city")
    - invalid = present fields violating a constraint, first reason per field
    - A non-object payload is reported as invalid["payload"]
    - Broken JSON schemas are rejected at construction, never at request time

Design Decisions:
    - JSON Schema via the jsonschema library (Draft 2020-12 + FormatChecker):
      the same dict shape as the tool input_schema definitions, emitted as-is
    - Pydantic models as a second engine: typed handlers get a model-backed schema
      and model_json_schema() for discovery
    - Pydantic strict mode runs through model_validate_json so JSON-native strings
      (uuid, datetime) still parse while "5" for an int does not
"""

import copy
import json
import re
from typing import Any

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from restrpc.core.errors import RegistryConfigError
from restrpc.core.validation_result import Invalid, Valid, ValidationResult
from restrpc.core.validator import coerce_scalars

PAYLOAD_FIELD = "payload"
UNEXPECTED_FIELD = "unexpected field"


def _dotted(path: list, leaf: str | None = None) -> str:
    parts = [str(p) for p in path]
    if leaf is not None:
        parts.append(leaf)
    return ".".join(parts)


class JSONSchemaDescriptor:
    """JSON Schema (Draft 2020-12) engine."""

    def __init__(self, schema: dict):
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as e:
            raise RegistryConfigError(f"Invalid JSON schema: {e.message}") from e
        self._schema = schema
        self._validator = Draft202012Validator(
            schema, format_checker=FormatChecker(),
        )

    def to_json_descriptor(self) -> dict:
        return copy.deepcopy(self._schema)

    def validate(self, payload: Any, coerce: bool = False) -> ValidationResult:
        if not isinstance(payload, dict):
            return Invalid(invalid={PAYLOAD_FIELD: "payload must be an object"})
        properties = self._schema.get("properties", {})
        if coerce:
            payload = coerce_scalars(properties, payload)

        missing: list[str] = []
        invalid: dict[str, str] = {}
        for error in self._validator.iter_errors(payload):
            self._classify(error, missing, invalid)
        if missing or invalid:
            return Invalid(missing=missing, invalid=invalid)
        return Valid(self._apply_defaults(properties, payload))

    def _classify(self, error, missing: list[str], invalid: dict[str, str]) -> None:
        path = list(error.absolute_path)
        if error.validator == "required" and isinstance(error.instance, dict):
            for name in error.validator_value:
                if name not in error.instance:
                    field = _dotted(path, name)
                    if field not in missing:
                        missing.append(field)
            return
        if error.validator == "additionalProperties" and isinstance(error.instance, dict):
            for name in _unexpected_keys(error.schema, error.instance):
                invalid.setdefault(_dotted(path, name), UNEXPECTED_FIELD)
            return
        field = _dotted(path) or PAYLOAD_FIELD
        invalid.setdefault(field, error.message)

    @staticmethod
    def _apply_defaults(properties: dict, payload: dict) -> dict:
        normalized = dict(payload)
        for name, prop in properties.items():
            if name not in normalized and isinstance(prop, dict) and "default" in prop:
                normalized[name] = copy.deepcopy(prop["default"])
        return normalized


def _unexpected_keys(schema: dict, instance: dict) -> list[str]:
    known = schema.get("properties", {})
    patterns = [re.compile(p) for p in schema.get("patternProperties", {})]
    return [
        key for key in instance
        if key not in known and not any(p.search(key) for p in patterns)
    ]


class PydanticSchemaDescriptor:
    """Pydantic model engine."""

    def __init__(self, model: type[BaseModel]):
        self.model = model

    def to_json_descriptor(self) -> dict:
        return self.model.model_json_schema()

    def validate(self, payload: Any, coerce: bool = False) -> ValidationResult:
        if not isinstance(payload, dict):
            return Invalid(invalid={PAYLOAD_FIELD: "payload must be an object"})
        try:
            if coerce:
                instance = self.model.model_validate(payload)
            else:
                instance = self.model.model_validate_json(
                    json.dumps(payload), strict=True,
                )
        except PydanticValidationError as e:
            return _invalid_from_pydantic(e)
        return Valid(instance.model_dump())


def _invalid_from_pydantic(exc: PydanticValidationError) -> Invalid:
    missing: list[str] = []
    invalid: dict[str, str] = {}
    for err in exc.errors():
        field = _dotted(list(err["loc"])) or PAYLOAD_FIELD
        if err["type"] == "missing":
            if field not in missing:
                missing.append(field)
        else:
            invalid.setdefault(field, err["msg"])
    return Invalid(missing=missing, invalid=invalid)
