"""ORM Models — SQLAlchemy declarative models for persisted rows.

Invariants:
    - All models inherit from Base (db/base.py)
    - Resource rows hold any kind; the kind column is the tag

Design Decisions:
    - One file per table for locality
    - All models imported here so Base.metadata is complete before create_all / autogenerate
"""

from rulebook.models.resource import ResourceRow  # noqa: F401
from rulebook.models.audit_entry import AuditEntryRow  # noqa: F401
