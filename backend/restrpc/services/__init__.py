"""Services Layer — dispatcher, authenticator, and the example services.

Invariants:
    - Handlers grouped one class per service (define_* for schemas, handle_* for logic)
    - Service tables built by explicit lists in registry_loader (no auto-discovery)
"""
