"""Define Users Actions — pydantic-backed descriptors for the example `users` service.

Invariants:
    - register and login are public; me requires a bearer token
    - me takes no payload fields (no schema: any payload accepted and ignored)
"""

from restrpc.schemas.users import LoginPayload, RegisterUserPayload

USERS_SERVICE = {
    "name": "users",
    "description": "Register accounts, exchange credentials for bearer tokens, inspect identity.",
}

USERS_ACTIONS = [
    {
        "name": "register",
        "description": "Create an account.",
        "is_protected": False,
        "validation": RegisterUserPayload,
    },
    {
        "name": "login",
        "description": "Exchange username and password for a bearer token.",
        "is_protected": False,
        "validation": LoginPayload,
    },
    {
        "name": "me",
        "description": "Return the identity behind the presented bearer token.",
        "is_protected": True,
        "validation": None,
    },
]
