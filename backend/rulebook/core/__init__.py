"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - All functions are pure and deterministic (time arrives as an argument)

Design Decisions:
    - Functional core separated from imperative shell: the shell loads a snapshot,
      the core decides, the shell commits
"""
