"""
Module: backoffice_kernel.models.party
Responsibility: ORM persistence for the people and organisations the back
    office deals with: suppliers, employees, the users that log in as
    employees, and customers.
Architecture position: Kernel > Models.  May import from db/ only.

These rows are read-only from the purchasing core's perspective: purchases
reference a supplier and an employee, and the acting user is resolved to an
employee before a purchase is created.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase, UUIDString


class Supplier(TrackedBase):
    """A supplier that purchases are bought from."""

    __tablename__ = "suppliers"

    __table_args__ = (
        UniqueConstraint("ruc", name="uq_supplier_ruc"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Tax identification number
    ruc: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Supplier {self.ruc} {self.name}>"


class Employee(TrackedBase):
    """An employee; stamped on every purchase they register."""

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("dni", name="uq_employee_dni"),
    )

    fullname: Mapped[str] = mapped_column(String(255), nullable=False)
    # National identity document number
    dni: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Employee {self.dni} {self.fullname}>"


class User(TrackedBase):
    """
    A login account.  Linked to at most one employee.

    A user without an employee cannot register purchases.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    employee_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=True,
    )
    employee: Mapped[Employee | None] = relationship()

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Customer(TrackedBase):
    """A customer that sales are made to."""

    __tablename__ = "customers"

    fullname: Mapped[str] = mapped_column(String(255), nullable=False)
    dni: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Customer {self.dni} {self.fullname}>"
