"""
EmployeeResolver -- maps the acting user to the employee stamped on a
purchase.

Responsibility:
    Resolve a login user id to its linked employee id before any purchase
    mutation starts.

Architecture position:
    Kernel > Services.  ``EmployeeResolver`` is the collaborator protocol
    the PurchaseCoordinator depends on; ``UserEmployeeResolver`` is the
    database-backed implementation.

Failure modes:
    - EmployeeNotFoundError when the user does not exist or is not linked
      to an employee.  Never silently ignored.
"""

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_kernel.exceptions import EmployeeNotFoundError
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.party import User

logger = get_logger("services.employee_resolver")


class EmployeeResolver(Protocol):
    """Anything that can turn a user id into an employee id."""

    def resolve(self, user_id: UUID) -> UUID:
        ...


class UserEmployeeResolver:
    """Resolves through the ``users.employee_id`` link."""

    def __init__(self, session: Session):
        self._session = session

    def resolve(self, user_id: UUID) -> UUID:
        row = self._session.execute(
            select(User.id, User.employee_id).where(User.id == user_id)
        ).first()

        if row is None:
            logger.warning("employee_resolution_failed", extra={"user_id": str(user_id)})
            raise EmployeeNotFoundError(str(user_id), reason="user does not exist")
        if row.employee_id is None:
            logger.warning("employee_resolution_failed", extra={"user_id": str(user_id)})
            raise EmployeeNotFoundError(str(user_id))

        return row.employee_id
