"""feedserver - a server for signed, content-addressed items and their feeds.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
