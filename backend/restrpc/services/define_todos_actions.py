"""Define Todos Actions — JSON Schema descriptors for the example `todos` service.

Invariants:
    - Schemas are JSON Schema 2020-12 dicts, emitted verbatim by discovery
    - Required fields enforced by schema, not handler code
    - create is public; complete and delete require a bearer token

Design Decisions:
    - Schemas in a dedicated file, handlers in handle_todos.py: explicit, no auto-discovery
    - additionalProperties: false on writes so typos surface as invalid fields
"""

_UUID = {"type": "string", "format": "uuid"}

TODOS_SERVICE = {
    "name": "todos",
    "description": "Create, list, complete, and delete todo items.",
}

TODOS_ACTIONS = [
    {
        "name": "create",
        "description": "Create a todo item for a user.",
        "is_protected": False,
        "validation": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "minLength": 1, "maxLength": 200},
                "user_id": {**_UUID, "description": "Owner of the todo"},
                "completed": {"type": "boolean", "default": False},
            },
            "required": ["title", "user_id"],
            "additionalProperties": False,
        },
    },
    {
        "name": "list",
        "description": "List todo items, optionally filtered by owner or completion.",
        "is_protected": False,
        "validation": {
            "type": "object",
            "properties": {
                "user_id": _UUID,
                "completed": {"type": "boolean"},
                "limit": {"type": "integer", "minimum": 1, "maximum": 100, "default": 50},
                "offset": {"type": "integer", "minimum": 0, "default": 0},
            },
            "additionalProperties": False,
        },
    },
    {
        "name": "get",
        "description": "Fetch one todo by id (payload.id or resourceId).",
        "is_protected": False,
        "validation": {
            "type": "object",
            "properties": {"id": _UUID},
            "additionalProperties": False,
        },
    },
    {
        "name": "complete",
        "description": "Mark a todo as completed. Only its owner may do this.",
        "is_protected": True,
        "validation": {
            "type": "object",
            "properties": {"id": _UUID},
            "additionalProperties": False,
        },
    },
    {
        "name": "delete",
        "description": "Delete a todo. Only its owner may do this.",
        "is_protected": True,
        "validation": {
            "type": "object",
            "properties": {"id": _UUID},
            "additionalProperties": False,
        },
    },
]
