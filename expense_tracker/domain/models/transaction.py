from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Ownership(str, Enum):
    OWNED = "owned"
    FOREIGN = "foreign"
    MISSING = "missing"


class _Unset:
    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(slots=True)
class Transaction:
    id: int
    user_id: int
    kind: TransactionKind
    amount: Decimal
    category: str
    description: Optional[str]
    timestamp: datetime
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class TransactionChanges:
    """Partial update. Fields left as UNSET are not touched; ``description=None`` clears it."""

    kind: Any = UNSET
    amount: Any = UNSET
    category: Any = UNSET
    description: Any = UNSET
    timestamp: Any = UNSET

    def supplied(self) -> Dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in ("kind", "amount", "category", "description", "timestamp")
            if getattr(self, name) is not UNSET
        }


@dataclass(slots=True)
class TransactionFilters:
    kind: Optional[TransactionKind] = None
    category: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass(slots=True)
class OwnedLookup:
    """Outcome of an ownership-checked write against a single transaction."""

    ownership: Ownership
    transaction: Optional[Transaction] = None


@dataclass(slots=True)
class TransactionPage:
    items: List[Transaction]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.page_size) if self.page_size else 0


@dataclass(slots=True)
class Summary:
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal
    category_breakdown: Dict[str, Decimal] = field(default_factory=dict)


@dataclass(slots=True)
class MonthlyTotals:
    month: str
    transaction_count: int
    total_income: Decimal
    total_expense: Decimal
