"""Route Modules — one file per resource/concern.

Invariants:
    - Each module exposes a router factory or APIRouter with its own tags
    - Routes never contain dispatch logic (delegate to services/ and core/)
"""
