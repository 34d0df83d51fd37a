"""Discovery Responder — read-only reflection over a SchemaRegistry.

Invariants:
    - All functions are PURE: no IO, no side effects, registry never mutated
    - Validation descriptors are emitted verbatim (to_json_descriptor), never executed
    - Orders follow registration order
    - Lookup failures propagate as ServiceNotFoundError / ActionNotFoundError;
      the route turns them into envelopes

Design Decisions:
    - Schema snapshot computed fresh per call: the registry is immutable, so a
      cache would only ever hold the same answer
"""

from restrpc.core.schema_registry import Action, SchemaRegistry


def _validation_of(action: Action) -> dict | None:
    if action.validation_schema is None:
        return None
    return action.validation_schema.to_json_descriptor()


def list_services(registry: SchemaRegistry) -> list[str]:
    return registry.list_services()


def describe_service(registry: SchemaRegistry, service_name: str) -> dict:
    service = registry.get_service(service_name)
    return {
        "name": service.name,
        "description": service.description,
        "availableActions": service.action_names(),
    }


def describe_action(
    registry: SchemaRegistry, service_name: str, action_name: str,
) -> dict:
    action = registry.get_action(service_name, action_name)
    return {
        "name": action.name,
        "description": action.description,
        "isProtected": action.is_protected,
        "validation": _validation_of(action),
    }


def schema_snapshot(registry: SchemaRegistry) -> list[dict]:
    """Every service with its actions' {name, description, validation}."""
    return [
        {
            service.name: [
                {
                    "name": action.name,
                    "description": action.description,
                    "validation": _validation_of(action),
                }
                for action in service.actions
            ],
        }
        for service in registry.services()
    ]
