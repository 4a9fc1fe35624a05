"""Database layer - engine, base classes, types."""

from backoffice_kernel.db.base import Base, TrackedBase, UUIDString
from backoffice_kernel.db.engine import (
    apply_lock_timeout,
    create_tables,
    get_engine,
    get_session_factory,
    is_lock_contention,
    read_only,
)
from backoffice_kernel.db.types import round_money, to_date, to_money, to_quantity

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_tables",
    "apply_lock_timeout",
    "is_lock_contention",
    "read_only",
    "Base",
    "TrackedBase",
    "UUIDString",
    "round_money",
    "to_date",
    "to_money",
    "to_quantity",
]
