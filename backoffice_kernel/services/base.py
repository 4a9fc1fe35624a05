"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel layer.  A service instance is bound
    to one SQLAlchemy ``Session`` -- the transaction handle -- and uses
    ``session.flush()``, never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or rollback themselves.  The caller (a module service
    such as PurchaseCoordinator, or a test) owns commit/rollback, which is
    what makes multi-step units of work atomic.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only listings -- those belong in
          ``backoffice_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
