"""
SequenceService -- purchase numbers from a locked counter row.

Each named sequence is one row in ``sequence_counters``.  Allocating a value
locks that row (``SELECT ... FOR UPDATE``) and increments it, so concurrent
purchase creates queue on the counter and never see the same value.  Scanning
existing purchase numbers for MAX() + 1 would race, and is never done.

The increment belongs to the caller's transaction: a rolled back create
hands its number back, a committed one never repeats it.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


def format_sequence_number(prefix: str, value: int, width: int) -> str:
    """``format_sequence_number("PUR", 42, 6) -> "PUR-000042"``"""
    return f"{prefix}-{value:0{width}d}"


class SequenceService:
    """Transactional counters.  Flushes, never commits."""

    PURCHASE_NUMBER = "purchase_number"

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """
        Increment the named counter and return the new value (first use
        returns 1).  The counter row stays locked until the caller's
        transaction ends.
        """
        counter = self._locked_counter(sequence_name) or self._start_counter(sequence_name)
        counter.current_value += 1
        self._session.flush()

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Last allocated value, or None if the sequence was never used."""
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _start_counter(self, sequence_name: str) -> SequenceCounter:
        # Two first-time allocators can both try to insert the row.  The
        # loser rolls back only its savepoint and locks the winner's row.
        try:
            with self._session.begin_nested():
                counter = SequenceCounter(name=sequence_name, current_value=0)
                self._session.add(counter)
            return counter
        except IntegrityError:
            logger.debug("sequence_counter_race", extra={"sequence_name": sequence_name})
            counter = self._locked_counter(sequence_name)
            if counter is None:
                raise
            return counter
