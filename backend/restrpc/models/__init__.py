"""ORM Models — SQLAlchemy declarative models for the example services and dispatch log.

Invariants:
    - All models inherit from Base (db/base.py)
    - No dispatch decision reads from these tables

Design Decisions:
    - One file per entity for locality
    - All models imported here so create_all() sees every table
"""

from restrpc.models.todo import Todo  # noqa: F401
from restrpc.models.user import User  # noqa: F401
from restrpc.models.action_call import ActionCall  # noqa: F401
