from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..models import (
    OwnedLookup,
    SecretPurpose,
    Transaction,
    TransactionFilters,
    TransactionKind,
    User,
)


class UserRepository(Protocol):
    """Persistence functions related to user accounts and their secret tokens."""

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def create_user(self, email: str, password_hash: str, name: str) -> User:
        ...

    def update_user_password(self, user_id: int, password_hash: str) -> User:
        ...

    def update_user_profile(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        ...

    def delete_user(self, user_id: int) -> bool:
        ...

    def store_secret_token(
        self,
        user_id: int,
        purpose: SecretPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        ...

    def consume_secret_token(
        self,
        purpose: SecretPurpose,
        token_hash: str,
        now: datetime,
        *,
        new_password_hash: Optional[str] = None,
    ) -> Optional[User]:
        ...


class TransactionRepository(Protocol):
    """Owner-scoped persistence for ledger entries."""

    def create_transaction(
        self,
        user_id: int,
        kind: TransactionKind,
        amount: Decimal,
        category: str,
        description: Optional[str],
        timestamp: datetime,
    ) -> Transaction:
        ...

    def find_transactions(
        self,
        user_id: int,
        filters: TransactionFilters,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Transaction], int]:
        ...

    def update_transaction(
        self,
        transaction_id: int,
        user_id: int,
        changes: Dict[str, Any],
    ) -> OwnedLookup:
        ...

    def delete_transaction(self, transaction_id: int, user_id: int) -> OwnedLookup:
        ...

    def get_distinct_categories(self, user_id: int, kind: TransactionKind) -> List[str]:
        ...


class PersistenceGateway(UserRepository, TransactionRepository, Protocol):
    """Composite gateway combining every persistence concern used by the app."""

    pass
