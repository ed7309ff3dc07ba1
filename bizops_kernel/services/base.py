"""
BaseService -- abstract base for kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    service in the kernel layer.  Concrete services receive a SQLAlchemy
    ``Session`` and use ``session.flush()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's transaction
      and never commit or rollback themselves.  The one exception is the
      Entity Mutation Facade, which is the orchestrator and owns commits.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from bizops_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong in
          ``bizops_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
