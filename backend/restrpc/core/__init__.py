"""Core Layer — registry, validation, envelopes, discovery. No IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic

Design Decisions:
    - Functional core separated from imperative shell: the dispatcher in
      services/ orchestrates async IO around these pure pieces
"""
