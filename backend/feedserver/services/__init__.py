"""Services Layer - async orchestration of the core around the storage backend.

Invariants:
    - Services depend on the Backend Protocol, never on a concrete backend
    - put_item is the only write path; read_items holds every read path
"""
