"""Pydantic Schemas — request/response envelopes for the HTTP boundary.

Invariants:
    - Schemas check request SHAPE only (JSON object, id type); every domain rule lives in core/
    - Domain types from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
