"""
Module: production_kernel.selectors.base
Responsibility: Shared base for the read side.  Selectors query plans,
    steps, details, archives and the activity trail and hand back frozen
    dataclasses, never ORM rows.
Architecture position: Kernel > Selectors.  May import db/, models/ and
    domain/; never services/.

Invariants enforced:
    - A selector never adds, deletes, flushes or commits.
    - The Session and its transaction belong to the caller.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from production_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Read-only query object bound to the caller's Session."""

    def __init__(self, session: Session):
        self.session = session
