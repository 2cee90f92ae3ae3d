import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ...core.clock import Clock, utc_now
from ...domain.errors import DuplicateEmailError, NotFoundError, TransientStoreFailure
from ...domain.models import (
    OwnedLookup,
    Ownership,
    SecretPurpose,
    Transaction,
    TransactionFilters,
    TransactionKind,
    User,
)
from ...domain.money import from_minor_units, to_minor_units
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

_SECRET_COLUMNS = {
    SecretPurpose.RESET: ("reset_token_hash", "reset_expires_at"),
    SecretPurpose.VERIFY: ("verify_token_hash", "verify_expires_at"),
}


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Path, clock: Clock = utc_now) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._clock = clock
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    password_hash TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    email_verified INTEGER NOT NULL DEFAULT 0,
                    reset_token_hash TEXT,
                    reset_expires_at TEXT,
                    verify_token_hash TEXT,
                    verify_expires_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_reset_token
                    ON users(reset_token_hash);
                CREATE INDEX IF NOT EXISTS idx_users_verify_token
                    ON users(verify_token_hash);

                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    kind TEXT NOT NULL CHECK (kind IN ('income', 'expense')),
                    amount_minor INTEGER NOT NULL CHECK (amount_minor > 0),
                    category TEXT NOT NULL,
                    description TEXT,
                    timestamp TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_transactions_user_timestamp
                    ON transactions(user_id, timestamp DESC);
                """
            )

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as exc:
                logger.exception("SQLite operation failed")
                raise TransientStoreFailure("Storage operation failed.") from exc

    # UserRepository API ----------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower(),)).fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def create_user(self, email: str, password_hash: str, name: str) -> User:
        now = self._now()
        try:
            with self._transaction() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO users (email, password_hash, name, email_verified, created_at, updated_at)
                    VALUES (?, ?, ?, 0, ?, ?)
                    """,
                    (email.lower(), password_hash, name, now, now),
                )
                row = conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmailError("Email already registered.") from exc
        if not row:
            raise TransientStoreFailure("Failed to persist user.")
        return self._row_to_user(row)

    def update_user_password(self, user_id: int, password_hash: str) -> User:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, self._now(), user_id),
            )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            raise ValueError(f"User {user_id} not found.")
        return self._row_to_user(row)

    def update_user_profile(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        updates = []
        params: List[Any] = []
        if name is not None:
            updates.append("name = ?")
            params.append(name)
        if email is not None:
            # A new address has to be verified again.
            updates.extend(
                [
                    "email = ?",
                    "email_verified = 0",
                    "verify_token_hash = NULL",
                    "verify_expires_at = NULL",
                ]
            )
            params.append(email.lower())
        try:
            with self._transaction() as conn:
                if updates:
                    updates.append("updated_at = ?")
                    params.extend([self._now(), user_id])
                    conn.execute(f"UPDATE users SET {', '.join(updates)} WHERE id = ?", params)
                row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmailError("Email already registered.") from exc
        if not row:
            raise ValueError(f"User {user_id} not found.")
        return self._row_to_user(row)

    def delete_user(self, user_id: int) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cur.rowcount > 0

    def store_secret_token(
        self,
        user_id: int,
        purpose: SecretPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        hash_column, expiry_column = _SECRET_COLUMNS[purpose]
        with self._transaction() as conn:
            conn.execute(
                f"UPDATE users SET {hash_column} = ?, {expiry_column} = ?, updated_at = ? WHERE id = ?",
                (token_hash, self._format_datetime(expires_at), self._now(), user_id),
            )

    def consume_secret_token(
        self,
        purpose: SecretPurpose,
        token_hash: str,
        now: datetime,
        *,
        new_password_hash: Optional[str] = None,
    ) -> Optional[User]:
        hash_column, expiry_column = _SECRET_COLUMNS[purpose]
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT id, {expiry_column} FROM users WHERE {hash_column} = ?",
                (token_hash,),
            ).fetchone()
            if not row or not row[expiry_column]:
                return None
            if now > self._parse_datetime(row[expiry_column]):
                return None

            updates = [f"{hash_column} = NULL", f"{expiry_column} = NULL", "updated_at = ?"]
            params: List[Any] = [self._format_datetime(now)]
            if purpose is SecretPurpose.RESET and new_password_hash:
                updates.append("password_hash = ?")
                params.append(new_password_hash)
            if purpose is SecretPurpose.VERIFY:
                updates.append("email_verified = 1")
            params.extend([row["id"], token_hash])
            cur = conn.execute(
                f"UPDATE users SET {', '.join(updates)} WHERE id = ? AND {hash_column} = ?",
                params,
            )
            if cur.rowcount != 1:
                return None
            row = conn.execute("SELECT * FROM users WHERE id = ?", (row["id"],)).fetchone()
        return self._row_to_user(row)

    # TransactionRepository API ---------------------------------------------
    def create_transaction(
        self,
        user_id: int,
        kind: TransactionKind,
        amount: Decimal,
        category: str,
        description: Optional[str],
        timestamp: datetime,
    ) -> Transaction:
        now = self._now()
        try:
            with self._transaction() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO transactions (
                        user_id, kind, amount_minor, category, description,
                        timestamp, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        kind.value,
                        to_minor_units(amount),
                        category,
                        description,
                        self._format_datetime(timestamp),
                        now,
                        now,
                    ),
                )
                row = conn.execute("SELECT * FROM transactions WHERE id = ?", (cur.lastrowid,)).fetchone()
        except sqlite3.IntegrityError as exc:
            # Owner row is gone: the session outlived a deleted account.
            raise NotFoundError("Account not found.") from exc
        if not row:
            raise TransientStoreFailure("Failed to persist transaction.")
        return self._row_to_transaction(row)

    def find_transactions(
        self,
        user_id: int,
        filters: TransactionFilters,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Transaction], int]:
        clauses = ["user_id = ?"]
        params: List[Any] = [user_id]
        if filters.kind is not None:
            clauses.append("kind = ?")
            params.append(filters.kind.value)
        if filters.category is not None:
            clauses.append("category = ?")
            params.append(filters.category)
        if filters.date_from is not None:
            clauses.append("date(timestamp) >= ?")
            params.append(filters.date_from.isoformat())
        if filters.date_to is not None:
            clauses.append("date(timestamp) <= ?")
            params.append(filters.date_to.isoformat())
        where = " AND ".join(clauses)

        query = f"SELECT * FROM transactions WHERE {where} ORDER BY timestamp DESC, id ASC"
        page_params = list(params)
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            page_params.extend([limit, offset])

        # Page and count are read under the same lock so they describe one snapshot.
        with self._transaction() as conn:
            rows = conn.execute(query, page_params).fetchall()
            total = conn.execute(f"SELECT COUNT(*) FROM transactions WHERE {where}", params).fetchone()[0]
        return [self._row_to_transaction(row) for row in rows], total

    def update_transaction(
        self,
        transaction_id: int,
        user_id: int,
        changes: Dict[str, Any],
    ) -> OwnedLookup:
        updates = []
        params: List[Any] = []
        if "kind" in changes:
            updates.append("kind = ?")
            params.append(changes["kind"].value)
        if "amount" in changes:
            updates.append("amount_minor = ?")
            params.append(to_minor_units(changes["amount"]))
        if "category" in changes:
            updates.append("category = ?")
            params.append(changes["category"])
        if "description" in changes:
            updates.append("description = ?")
            params.append(changes["description"])
        if "timestamp" in changes:
            updates.append("timestamp = ?")
            params.append(self._format_datetime(changes["timestamp"]))

        with self._transaction() as conn:
            ownership = self._ownership(conn, transaction_id, user_id)
            if ownership is not Ownership.OWNED:
                return OwnedLookup(ownership)
            if updates:
                updates.append("updated_at = ?")
                params.extend([self._now(), transaction_id, user_id])
                conn.execute(
                    f"UPDATE transactions SET {', '.join(updates)} WHERE id = ? AND user_id = ?",
                    params,
                )
            row = conn.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
        return OwnedLookup(Ownership.OWNED, self._row_to_transaction(row))

    def delete_transaction(self, transaction_id: int, user_id: int) -> OwnedLookup:
        with self._transaction() as conn:
            ownership = self._ownership(conn, transaction_id, user_id)
            if ownership is not Ownership.OWNED:
                return OwnedLookup(ownership)
            row = conn.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
            conn.execute(
                "DELETE FROM transactions WHERE id = ? AND user_id = ?",
                (transaction_id, user_id),
            )
        return OwnedLookup(Ownership.OWNED, self._row_to_transaction(row))

    def get_distinct_categories(self, user_id: int, kind: TransactionKind) -> List[str]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT DISTINCT category FROM transactions WHERE user_id = ? AND kind = ? ORDER BY category",
                (user_id, kind.value),
            ).fetchall()
        return [row["category"] for row in rows]

    # Helpers ----------------------------------------------------------------
    @staticmethod
    def _ownership(conn: sqlite3.Connection, transaction_id: int, user_id: int) -> Ownership:
        row = conn.execute("SELECT user_id FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
        if row is None:
            return Ownership.MISSING
        if row["user_id"] != user_id:
            return Ownership.FOREIGN
        return Ownership.OWNED

    def _now(self) -> str:
        return self._format_datetime(self._clock())

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

    @staticmethod
    def _parse_datetime(value: str) -> datetime:
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _parse_optional(self, value: Optional[str]) -> Optional[datetime]:
        return self._parse_datetime(value) if value else None

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            name=row["name"],
            email_verified=bool(row["email_verified"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
            reset_token_hash=row["reset_token_hash"],
            reset_expires_at=self._parse_optional(row["reset_expires_at"]),
            verify_token_hash=row["verify_token_hash"],
            verify_expires_at=self._parse_optional(row["verify_expires_at"]),
        )

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            kind=TransactionKind(row["kind"]),
            amount=from_minor_units(row["amount_minor"]),
            category=row["category"],
            description=row["description"],
            timestamp=self._parse_datetime(row["timestamp"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
