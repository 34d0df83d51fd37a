"""Schema Registry — immutable table of services, actions, schemas, and handlers.

Invariants:
    - Built once at startup, never mutated afterwards (safe to share across requests)
    - Lookups are case-sensitive exact matches
    - Service names unique per registry; action names unique per service
    - list_services() and Service.action_names() keep registration order
    - Absent names raise ServiceNotFoundError / ActionNotFoundError (never fatal)
    - "schema" is reserved: GET /services/schema would shadow such a service

Design Decisions:
    - One registry per API version, collected in ApiVersions: versions run side
      by side without sharing mutable state
    - Explicit construction from Service lists: every handler mapping is visible
      in the define_* modules, no auto-discovery
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from restrpc.core.contracts import Handler, SchemaDescriptor
from restrpc.core.errors import (
    ActionNotFoundError,
    RegistryConfigError,
    ServiceNotFoundError,
    VersionNotFoundError,
)

RESERVED_SERVICE_NAMES = frozenset({"schema"})
_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def _check_name(kind: str, name: str) -> None:
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise RegistryConfigError(f"Invalid {kind} name: {name!r}")


@dataclass(frozen=True)
class Action:
    """A named operation: description, protection flag, schema, handler."""
    name: str
    description: str
    handler: Handler
    is_protected: bool = False
    validation_schema: SchemaDescriptor | None = None

    def __post_init__(self):
        _check_name("action", self.name)


@dataclass(frozen=True)
class Service:
    """A named, ordered group of actions."""
    name: str
    description: str
    actions: tuple[Action, ...] = ()
    _by_name: Mapping[str, Action] = field(
        init=False, repr=False, compare=False,
    )

    def __post_init__(self):
        _check_name("service", self.name)
        actions = tuple(self.actions)
        by_name: dict[str, Action] = {}
        for action in actions:
            if action.name in by_name:
                raise RegistryConfigError(
                    f"Duplicate action '{action.name}' in service '{self.name}'",
                )
            by_name[action.name] = action
        object.__setattr__(self, "actions", actions)
        object.__setattr__(self, "_by_name", MappingProxyType(by_name))

    def action_names(self) -> list[str]:
        return [a.name for a in self.actions]

    def find_action(self, name: str) -> Action | None:
        return self._by_name.get(name)


class SchemaRegistry:
    """Read-only lookup over one API version's services."""

    def __init__(self, services: Iterable[Service]):
        by_name: dict[str, Service] = {}
        for service in services:
            if service.name in RESERVED_SERVICE_NAMES:
                raise RegistryConfigError(
                    f"Service name '{service.name}' is reserved",
                )
            if service.name in by_name:
                raise RegistryConfigError(
                    f"Duplicate service '{service.name}'",
                )
            by_name[service.name] = service
        self._services = MappingProxyType(by_name)

    def __len__(self) -> int:
        return len(self._services)

    def list_services(self) -> list[str]:
        return list(self._services)

    def services(self) -> tuple[Service, ...]:
        return tuple(self._services.values())

    def get_service(self, name: str) -> Service:
        service = self._services.get(name)
        if service is None:
            raise ServiceNotFoundError(name)
        return service

    def get_action(self, service_name: str, action_name: str) -> Action:
        service = self.get_service(service_name)
        action = service.find_action(action_name)
        if action is None:
            raise ActionNotFoundError(
                service_name, action_name, service.action_names(),
            )
        return action


class ApiVersions:
    """All registries served by this process, keyed by path segment (v1, v2, ...)."""

    def __init__(self, registries: Mapping[str, SchemaRegistry]):
        if not registries:
            raise RegistryConfigError("At least one API version is required")
        for version in registries:
            _check_name("API version", version)
        self._registries = MappingProxyType(dict(registries))

    def versions(self) -> list[str]:
        return list(self._registries)

    def get(self, version: str) -> SchemaRegistry:
        registry = self._registries.get(version)
        if registry is None:
            raise VersionNotFoundError(version, self.versions())
        return registry
