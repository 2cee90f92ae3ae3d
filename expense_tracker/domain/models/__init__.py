"""Domain models for the expense tracker."""

from .transaction import (
    UNSET,
    MonthlyTotals,
    OwnedLookup,
    Ownership,
    Summary,
    Transaction,
    TransactionChanges,
    TransactionFilters,
    TransactionKind,
    TransactionPage,
)
from .user import Principal, SecretPurpose, User

__all__ = [
    "UNSET",
    "MonthlyTotals",
    "OwnedLookup",
    "Ownership",
    "Principal",
    "SecretPurpose",
    "Summary",
    "Transaction",
    "TransactionChanges",
    "TransactionFilters",
    "TransactionKind",
    "TransactionPage",
    "User",
]
