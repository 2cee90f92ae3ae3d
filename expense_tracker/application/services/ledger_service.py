"""Owner-scoped transaction ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from ...core.clock import Clock, utc_now
from ...domain.errors import (
    ForbiddenError,
    InvalidKindError,
    MissingFieldError,
    NonPositiveAmountError,
    NotFoundError,
    TransientStoreFailure,
    ValidationError,
)
from ...domain.models import (
    OwnedLookup,
    Ownership,
    Transaction,
    TransactionChanges,
    TransactionFilters,
    TransactionKind,
    TransactionPage,
)
from ...domain.money import MAX_AMOUNT, MINOR_UNIT_PLACES
from ...domain.ports.persistence import TransactionRepository

logger = logging.getLogger(__name__)

CATEGORY_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
# Largest id or offset SQLite can bind as a 64-bit signed integer.
STORE_INTEGER_MAX = 2**63 - 1


def parse_kind(value: Any) -> TransactionKind:
    if value is None or value == "":
        raise MissingFieldError("Type is required.")
    if isinstance(value, TransactionKind):
        return value
    try:
        return TransactionKind(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidKindError("Type must be income or expense.") from exc


def parse_amount(value: Any) -> Decimal:
    if value is None or value == "":
        raise MissingFieldError("Amount is required.")
    if isinstance(value, bool):
        raise ValidationError("Amount must be a number.")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError("Amount must be a number.") from exc
    if not amount.is_finite():
        raise ValidationError("Amount must be a number.")
    if amount <= 0:
        raise NonPositiveAmountError("Amount must be greater than 0.")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}.")
    quantum = Decimal(1).scaleb(-MINOR_UNIT_PLACES)
    if amount != amount.quantize(quantum):
        raise ValidationError(f"Amount must have at most {MINOR_UNIT_PLACES} decimal places.")
    return amount.quantize(quantum)


def clean_category(value: Optional[str]) -> str:
    category = (value or "").strip()
    if not category:
        raise MissingFieldError("Category is required.")
    if len(category) > CATEGORY_MAX_LENGTH:
        raise ValidationError(f"Category must be at most {CATEGORY_MAX_LENGTH} characters long.")
    return category


def clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    description = value.strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters long.")
    return description or None


def clean_timestamp(value: datetime) -> datetime:
    """Normalise a client timestamp to UTC; naive values are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except (OverflowError, ValueError) as exc:
        raise ValidationError("Timestamp is out of range.") from exc


class TransactionLedger:
    """
    Creates, lists, updates and deletes transactions on behalf of their owner.

    Every operation takes the owner's user id. A transaction owned by someone
    else is reported exactly like a missing one.
    """

    def __init__(
        self,
        transaction_repository: TransactionRepository,
        *,
        default_page_size: int = 50,
        max_page_size: int = 200,
        clock: Clock = utc_now,
    ) -> None:
        self._transactions = transaction_repository
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._clock = clock

    # ------------------------------------------------------------------
    def create_transaction(
        self,
        owner_id: int,
        kind: Any,
        amount: Any,
        category: Optional[str],
        description: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Transaction:
        # Validate everything before touching the store.
        kind_value = parse_kind(kind)
        amount_value = parse_amount(amount)
        category_value = clean_category(category)
        description_value = clean_description(description)
        timestamp_value = clean_timestamp(timestamp) if timestamp is not None else self._clock()
        return self._transactions.create_transaction(
            user_id=owner_id,
            kind=kind_value,
            amount=amount_value,
            category=category_value,
            description=description_value,
            timestamp=timestamp_value,
        )

    def list_transactions(
        self,
        owner_id: int,
        filters: Optional[TransactionFilters] = None,
        *,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> TransactionPage:
        """Return one page ordered newest first, plus the filtered total before paging."""
        size = self._default_page_size if page_size is None else page_size
        if page < 1:
            raise ValidationError("Page must be 1 or greater.")
        if size < 1 or size > self._max_page_size:
            raise ValidationError(f"Page size must be between 1 and {self._max_page_size}.")
        criteria = self._check_filters(filters)
        offset = (page - 1) * size
        if offset > STORE_INTEGER_MAX:
            # No store can hold that many rows; report the total with an empty page.
            _, total = self._transactions.find_transactions(owner_id, criteria, limit=0)
            return TransactionPage(items=[], total=total, page=page, page_size=size)
        items, total = self._transactions.find_transactions(
            owner_id,
            criteria,
            limit=size,
            offset=offset,
        )
        return TransactionPage(items=items, total=total, page=page, page_size=size)

    def all_transactions(
        self,
        owner_id: int,
        filters: Optional[TransactionFilters] = None,
    ) -> List[Transaction]:
        """Every matching transaction, read in one query so callers see a single snapshot."""
        items, _ = self._transactions.find_transactions(owner_id, self._check_filters(filters))
        return items

    def update_transaction(
        self,
        owner_id: int,
        transaction_id: int,
        changes: TransactionChanges,
    ) -> Transaction:
        supplied = self._check_changes(changes)
        self._check_id(transaction_id)
        lookup = self._transactions.update_transaction(transaction_id, owner_id, supplied)
        return self._resolve(lookup, owner_id, transaction_id)

    def delete_transaction(self, owner_id: int, transaction_id: int) -> None:
        self._check_id(transaction_id)
        lookup = self._transactions.delete_transaction(transaction_id, owner_id)
        self._resolve(lookup, owner_id, transaction_id)

    def distinct_categories(self, owner_id: int, kind: Any) -> List[str]:
        return self._transactions.get_distinct_categories(owner_id, parse_kind(kind))

    # Helpers ------------------------------------------------------------
    def _resolve(self, lookup: OwnedLookup, owner_id: int, transaction_id: int) -> Transaction:
        try:
            return self._require_owned(lookup, owner_id, transaction_id)
        except ForbiddenError:
            raise NotFoundError("Transaction not found.") from None

    @staticmethod
    def _require_owned(lookup: OwnedLookup, owner_id: int, transaction_id: int) -> Transaction:
        if lookup.ownership is Ownership.MISSING:
            raise NotFoundError("Transaction not found.")
        if lookup.ownership is Ownership.FOREIGN:
            logger.warning(
                "User %s attempted to access transaction %s owned by another user",
                owner_id,
                transaction_id,
            )
            raise ForbiddenError("Transaction belongs to another user.")
        if lookup.transaction is None:
            raise TransientStoreFailure("Owned transaction could not be read back.")
        return lookup.transaction

    @staticmethod
    def _check_id(transaction_id: int) -> None:
        # Ids outside the store's integer range can never exist.
        if not 1 <= transaction_id <= STORE_INTEGER_MAX:
            raise NotFoundError("Transaction not found.")

    @staticmethod
    def _check_filters(filters: Optional[TransactionFilters]) -> TransactionFilters:
        criteria = filters or TransactionFilters()
        if criteria.date_from and criteria.date_to and criteria.date_from > criteria.date_to:
            raise ValidationError("Start date must not be after end date.")
        return criteria

    @staticmethod
    def _check_changes(changes: TransactionChanges) -> dict:
        supplied = changes.supplied()
        if not supplied:
            raise ValidationError("No valid fields to update.")
        checked = {}
        if "kind" in supplied:
            checked["kind"] = parse_kind(supplied["kind"])
        if "amount" in supplied:
            checked["amount"] = parse_amount(supplied["amount"])
        if "category" in supplied:
            checked["category"] = clean_category(supplied["category"])
        if "description" in supplied:
            checked["description"] = clean_description(supplied["description"])
        if "timestamp" in supplied:
            if supplied["timestamp"] is None:
                raise MissingFieldError("Timestamp cannot be cleared.")
            checked["timestamp"] = clean_timestamp(supplied["timestamp"])
        return checked
