"""
BaseService -- common shell for write-side services.

Responsibility:
    Holds the caller's Session.  Services stage their writes with
    ``session.flush()`` so constraint violations surface inside the call,
    and leave commit and rollback to whoever opened the transaction
    (a route handler, ``session_scope()`` or ``CompletionCoordinator``).

Architecture position:
    Kernel > Services.

Invariants enforced:
    - No service commits or rolls back.  Job completion depends on this:
      the archive insert, the plan delete and the job update are flushed
      by one service and committed once by the coordinator.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from production_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Write-side service bound to one Session.  Reads go through selectors."""

    def __init__(self, session: Session):
        self.session = session
