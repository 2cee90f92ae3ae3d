"""User domain model for credential and profile management."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SecretPurpose(str, Enum):
    RESET = "reset"
    VERIFY = "verify"


@dataclass(slots=True)
class User:
    """
    Registered account.

    Attributes:
        id: Unique identifier
        email: Lower-cased email address (unique, case-insensitive)
        password_hash: bcrypt hash, never the plaintext
        name: Display name
        email_verified: Whether a verification secret has been consumed
        reset_token_hash: SHA-256 digest of the pending reset secret
        reset_expires_at: Absolute expiry of the pending reset secret
        verify_token_hash: SHA-256 digest of the pending verification secret
        verify_expires_at: Absolute expiry of the pending verification secret
    """

    id: int
    email: str
    password_hash: str
    name: str
    email_verified: bool
    created_at: datetime
    updated_at: datetime
    reset_token_hash: Optional[str] = None
    reset_expires_at: Optional[datetime] = None
    verify_token_hash: Optional[str] = None
    verify_expires_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} verified={self.email_verified}>"


@dataclass(frozen=True, slots=True)
class Principal:
    """Identity resolved from a verified session token."""

    user_id: int
    email: str
