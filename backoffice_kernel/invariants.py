"""
Kernel Invariants Contract.

These invariants are structural law.  No configuration flag may switch them
off, except where noted (negative stock is configurable).

This module exists solely to declare these invariants explicitly.  The
enforcement is distributed across StockLedger, PurchaseStore,
PurchaseCoordinator and SequenceService.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    STOCK_BALANCE = "stock_balance"
    """A product's stock equals its initial stock plus the quantities of all
    live purchase line items referencing it.  Checked at commit by
    StockLedger.verify()."""

    ATOMIC_UNIT_OF_WORK = "atomic_unit_of_work"
    """A coordinator write either commits every effect or none.  Enforced by
    the coordinator's unit-of-work rollback."""

    LOCKED_STOCK_MUTATION = "locked_stock_mutation"
    """Stock is only mutated through StockLedger.adjust (a single atomic
    UPDATE), never by read-modify-write outside a row lock."""

    SEQUENCE_MONOTONICITY = "sequence_monotonicity"
    """Generated purchase numbers are strictly monotonic.  Enforced by
    SequenceService with a locked counter row."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """Stock is never negative at commit, unless
    PurchasingConfig.allow_negative_stock is set."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "backoffice_modules",
    "backoffice_config",
)
