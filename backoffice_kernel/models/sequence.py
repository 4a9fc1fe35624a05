"""
Module: backoffice_kernel.models.sequence
Responsibility: Named monotonic counters backing SequenceService.
Architecture position: Kernel > Models.

Each row represents a named sequence with its current value.  Row-level
locking (SELECT ... FOR UPDATE) in SequenceService ensures monotonicity
under concurrency.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import Base


class SequenceCounter(Base):
    """Sequence counter table."""

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "purchase_number")
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
