"""Services Layer — async orchestration around the pure evaluation core.

Invariants:
    - Services own the lock, the store reads and the commit; rules live in core/
    - Every attempted mutation reaches the audit sink exactly once

Design Decisions:
    - Snapshot loading split from the mutation service: one read phase per request
"""
