"""Infrastructure Layer — stores, audit sinks, clock and cross-cutting concerns.

Invariants:
    - Infrastructure implements core/repository_protocols.py; it never decides legality
    - All SQLAlchemy failures surface as StoreError (core/errors.py)

Design Decisions:
    - One adapter per collaborator, swappable via Settings (memory vs sql)
"""
