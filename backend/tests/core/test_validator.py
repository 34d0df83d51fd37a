"""Validator — tests for the engine-agnostic validate() entry point."""

from restrpc.core.schema_descriptors import JSONSchemaDescriptor
from restrpc.core.validation_result import Invalid, Valid
from restrpc.core.validator import coerce_scalars, validate

SCHEMA = JSONSchemaDescriptor({
    "type": "object",
    "properties": {"name": {"type": "string"}},
    "required": ["name"],
})


def test_no_schema_accepts_anything():
    assert validate(None, {"anything": [1, 2]}) == Valid({"anything": [1, 2]})


def test_none_payload_treated_as_empty_object():
    assert validate(None, None) == Valid({})
    assert validate(SCHEMA, None) == Invalid(missing=["name"], invalid={})


def test_caller_payload_never_mutated():
    payload = {"nested": {"a": 1}}
    result = validate(None, payload)
    result.payload["nested"]["a"] = 2
    assert payload == {"nested": {"a": 1}}


def test_is_deterministic():
    assert validate(SCHEMA, {}) == validate(SCHEMA, {})


def test_invalid_to_data_shape():
    assert Invalid(missing=["user_id"]).to_data() == {
        "missing": ["user_id"], "invalid": {},
    }


def test_coerce_scalars_converts_declared_types():
    properties = {
        "count": {"type": "integer"},
        "ratio": {"type": "number"},
        "flag": {"type": "boolean"},
        "name": {"type": "string"},
    }
    coerced = coerce_scalars(
        properties, {"count": " 7 ", "ratio": "0.5", "flag": "no", "name": "5"},
    )
    assert coerced == {"count": 7, "ratio": 0.5, "flag": False, "name": "5"}


def test_coerce_scalars_leaves_unconvertible_values():
    properties = {"count": {"type": "integer"}, "ratio": {"type": "number"}}
    payload = {"count": "seven", "ratio": "nan", "other": "1"}
    assert coerce_scalars(properties, payload) == payload


def test_coerce_scalars_union_type():
    properties = {"limit": {"type": ["integer", "null"]}}
    assert coerce_scalars(properties, {"limit": "10"}) == {"limit": 10}


def test_coerce_scalars_skips_boolean_subschemas():
    properties = {"anything": True, "nothing": False, "count": {"type": "integer"}}
    coerced = coerce_scalars(properties, {"anything": "5", "nothing": "6", "count": "7"})
    assert coerced == {"anything": "5", "nothing": "6", "count": 7}
