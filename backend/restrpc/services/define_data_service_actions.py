"""Define Data-Service Actions — descriptors for the example `data-service` service.

Invariants:
    - upload expects multipart/form-data with `file` or `files` parts
    - echo accepts any payload (no schema)
"""

DATA_SERVICE = {
    "name": "data-service",
    "description": "File intake and request diagnostics.",
}

DATA_SERVICE_ACTIONS = [
    {
        "name": "upload",
        "description": (
            "Accept one or more files (multipart `file`/`files`) and return "
            "their name, content type, size, and SHA-256 digest."
        ),
        "is_protected": False,
        "validation": {
            "type": "object",
            "properties": {
                "label": {"type": "string", "maxLength": 200},
            },
            "additionalProperties": False,
        },
    },
    {
        "name": "echo",
        "description": "Return the payload, resourceId, and requestId as received.",
        "is_protected": False,
        "validation": None,
    },
]
