"""Pydantic Schemas - JSON response documents for the read API.

Invariants:
    - Schemas are API contracts; ORM models stay behind the SQL backend
"""
