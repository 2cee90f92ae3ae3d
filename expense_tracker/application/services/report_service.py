from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from ...core.clock import Clock, utc_now
from ...domain.models import MonthlyTotals, Summary, TransactionFilters, User
from .aggregation import monthly_totals, summarize
from .ledger_service import TransactionLedger

STATS_MONTHS = 6


@dataclass(slots=True)
class AccountStats:
    total_transactions: int
    account_created: date
    email_verified: bool
    monthly: List[MonthlyTotals]


class ReportService:
    """Fetches a single ledger snapshot and hands it to the aggregation functions."""

    def __init__(self, ledger: TransactionLedger, clock: Clock = utc_now) -> None:
        self._ledger = ledger
        self._clock = clock

    def summary(self, owner_id: int, filters: Optional[TransactionFilters] = None) -> Summary:
        return summarize(self._ledger.all_transactions(owner_id, filters))

    def stats(self, user: User) -> AccountStats:
        today = self._clock().date()
        month_index = today.year * 12 + today.month - 1 - (STATS_MONTHS - 1)
        since = date(month_index // 12, month_index % 12 + 1, 1)
        # One read feeds both the count and the monthly totals.
        everything = self._ledger.all_transactions(user.id)
        recent = [item for item in everything if item.timestamp.date() >= since]
        return AccountStats(
            total_transactions=len(everything),
            account_created=user.created_at.date(),
            email_verified=user.email_verified,
            monthly=monthly_totals(recent),
        )
