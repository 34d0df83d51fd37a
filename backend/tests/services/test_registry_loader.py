"""Registry Loader — tests for the startup service table.

Tests cover:
    - v1 serves data-service, todos, users in that order
    - Descriptor engine chosen by definition type
    - Handler/definition mismatches rejected at startup
"""

import pytest

from restrpc.core.errors import RegistryConfigError
from restrpc.core.schema_descriptors import JSONSchemaDescriptor, PydanticSchemaDescriptor
from restrpc.schemas.users import LoginPayload
from restrpc.services.registry_loader import (
    build_api_versions, build_descriptor, build_service,
)


def _noop(payload, context):
    return None


DEFINITION = {"name": "things", "description": "Things"}
ACTIONS = [{"name": "make", "description": "Make a thing"}]


def test_v1_services_in_order(settings):
    registry = build_api_versions(settings).get("v1")
    assert registry.list_services() == ["data-service", "todos", "users"]


def test_v1_action_tables(settings):
    registry = build_api_versions(settings).get("v1")
    assert registry.get_service("todos").action_names() == [
        "create", "list", "get", "complete", "delete",
    ]
    assert registry.get_service("users").action_names() == ["register", "login", "me"]
    assert registry.get_service("data-service").action_names() == ["upload", "echo"]


def test_v1_protection_flags(settings):
    registry = build_api_versions(settings).get("v1")
    protected = {
        f"{s.name}.{a.name}"
        for s in registry.services() for a in s.actions if a.is_protected
    }
    assert protected == {"todos.complete", "todos.delete", "users.me"}


def test_build_descriptor_picks_engine():
    assert build_descriptor(None) is None
    assert isinstance(build_descriptor({"type": "object"}), JSONSchemaDescriptor)
    assert isinstance(build_descriptor(LoginPayload), PydanticSchemaDescriptor)
    custom = JSONSchemaDescriptor({"type": "object"})
    assert build_descriptor(custom) is custom


def test_build_descriptor_rejects_unknown_types():
    with pytest.raises(RegistryConfigError):
        build_descriptor("not a schema")


def test_build_service_requires_handler_per_action():
    with pytest.raises(RegistryConfigError):
        build_service(DEFINITION, ACTIONS, {})


def test_build_service_rejects_orphan_handlers():
    with pytest.raises(RegistryConfigError):
        build_service(DEFINITION, ACTIONS, {"make": _noop, "break": _noop})


def test_build_service_defaults_to_unprotected():
    service = build_service(DEFINITION, ACTIONS, {"make": _noop})
    action = service.find_action("make")
    assert action.is_protected is False
    assert action.validation_schema is None
    assert action.handler is _noop
