"""Registry Loader — builds the per-version service table once at startup.

Invariants:
    - Every action -> handler mapping is visible here — no getattr magic, no auto-discovery
    - Every defined action has exactly one handler and every handler a definition;
      a mismatch raises RegistryConfigError at startup, never at request time
    - Service order in a version = order of the list below (drives GET /services)

Design Decisions:
    - Explicit dict per service over reflection: adding an action requires
      editing the define_* file AND this mapping
    - Descriptor engine chosen by the definition's type: dict -> JSON Schema,
      pydantic model -> PydanticSchemaDescriptor, None -> accept any payload
"""

from typing import Any, Mapping

from pydantic import BaseModel

from restrpc.config import Settings
from restrpc.core.contracts import Handler, SchemaDescriptor
from restrpc.core.errors import RegistryConfigError
from restrpc.core.schema_descriptors import JSONSchemaDescriptor, PydanticSchemaDescriptor
from restrpc.core.schema_registry import Action, ApiVersions, SchemaRegistry, Service
from restrpc.services.define_data_service_actions import DATA_SERVICE, DATA_SERVICE_ACTIONS
from restrpc.services.define_todos_actions import TODOS_ACTIONS, TODOS_SERVICE
from restrpc.services.define_users_actions import USERS_ACTIONS, USERS_SERVICE
from restrpc.services.handle_data_service import DataServiceHandlers
from restrpc.services.handle_todos import TodosHandlers
from restrpc.services.handle_users import UsersHandlers


def build_descriptor(validation: Any) -> SchemaDescriptor | None:
    """Pick the schema engine for one action definition."""
    if validation is None:
        return None
    if isinstance(validation, dict):
        return JSONSchemaDescriptor(validation)
    if isinstance(validation, type) and issubclass(validation, BaseModel):
        return PydanticSchemaDescriptor(validation)
    if hasattr(validation, "validate") and hasattr(validation, "to_json_descriptor"):
        return validation
    raise RegistryConfigError(
        f"Unsupported validation descriptor: {type(validation).__name__}",
    )


def build_service(
    definition: Mapping[str, str],
    actions: list[Mapping[str, Any]],
    handlers: Mapping[str, Handler],
) -> Service:
    """Combine a define_* table with its explicit handler mapping."""
    defined = [a["name"] for a in actions]
    unhandled = [name for name in defined if name not in handlers]
    orphaned = [name for name in handlers if name not in defined]
    if unhandled or orphaned:
        raise RegistryConfigError(
            f"Service '{definition['name']}' handler mismatch: "
            f"no handler for {unhandled}, no definition for {orphaned}",
        )
    return Service(
        name=definition["name"],
        description=definition["description"],
        actions=tuple(
            Action(
                name=a["name"],
                description=a["description"],
                handler=handlers[a["name"]],
                is_protected=a.get("is_protected", False),
                validation_schema=build_descriptor(a.get("validation")),
            )
            for a in actions
        ),
    )


def build_v1_services(settings: Settings) -> list[Service]:
    data = DataServiceHandlers()
    todos = TodosHandlers()
    users = UsersHandlers(settings)

    return [
        build_service(DATA_SERVICE, DATA_SERVICE_ACTIONS, {
            "upload": data.upload,
            "echo": data.echo,
        }),
        build_service(TODOS_SERVICE, TODOS_ACTIONS, {
            "create": todos.create,
            "list": todos.list_todos,
            "get": todos.get,
            "complete": todos.complete,
            "delete": todos.delete,
        }),
        build_service(USERS_SERVICE, USERS_ACTIONS, {
            "register": users.register,
            "login": users.login,
            "me": users.me,
        }),
    ]


def build_api_versions(settings: Settings) -> ApiVersions:
    """All API versions this process serves. Add a key to run a version side by side."""
    return ApiVersions({
        "v1": SchemaRegistry(build_v1_services(settings)),
    })
