"""Infrastructure Layer - database, storage backend implementation, logging.

Invariants:
    - Infrastructure implements core Protocols; core never imports from here
    - SQLAlchemy errors are mapped to DatabaseError at the session boundary
"""
