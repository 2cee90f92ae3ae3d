"""Derived views over an already-fetched set of transactions."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List

from ...domain.models import MonthlyTotals, Summary, Transaction, TransactionKind
from ...domain.money import from_minor_units, to_minor_units


def summarize(transactions: Iterable[Transaction]) -> Summary:
    """
    Totals and expense breakdown for exactly the transactions given.

    Sums are accumulated in integer minor units and converted back to Decimal
    only for the result.
    """
    income = 0
    expense = 0
    breakdown: Dict[str, int] = defaultdict(int)
    for item in transactions:
        minor = to_minor_units(item.amount)
        if item.kind is TransactionKind.INCOME:
            income += minor
        else:
            expense += minor
            breakdown[item.category] += minor

    return Summary(
        total_income=from_minor_units(income),
        total_expense=from_minor_units(expense),
        balance=from_minor_units(income - expense),
        category_breakdown={category: from_minor_units(value) for category, value in breakdown.items()},
    )


def monthly_totals(transactions: Iterable[Transaction]) -> List[MonthlyTotals]:
    """Per calendar month (UTC) counts and totals, newest month first."""
    buckets: Dict[str, List[int]] = defaultdict(lambda: [0, 0, 0])
    for item in transactions:
        bucket = buckets[item.timestamp.strftime("%Y-%m")]
        bucket[0] += 1
        if item.kind is TransactionKind.INCOME:
            bucket[1] += to_minor_units(item.amount)
        else:
            bucket[2] += to_minor_units(item.amount)

    return [
        MonthlyTotals(
            month=month,
            transaction_count=count,
            total_income=from_minor_units(income),
            total_expense=from_minor_units(expense),
        )
        for month, (count, income, expense) in sorted(buckets.items(), reverse=True)
    ]
