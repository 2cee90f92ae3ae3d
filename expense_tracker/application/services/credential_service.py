"""Service for user credentials, profile changes and single-use secret tokens."""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

import bcrypt

from ...core.clock import Clock, utc_now
from ...domain.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    MissingFieldError,
    ValidationError,
    WeakPasswordError,
)
from ...domain.models import SecretPurpose, User
from ...domain.ports.persistence import UserRepository

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 8
# bcrypt only looks at the first 72 bytes.
PASSWORD_MAX_BYTES = 72
NAME_MAX_LENGTH = 255


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def validate_password_strength(password: Optional[str]) -> None:
    """Raise WeakPasswordError unless the password meets the strength policy."""
    if not password:
        raise WeakPasswordError("Password is required.")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise WeakPasswordError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise WeakPasswordError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long.")
    if not any(char.isupper() for char in password):
        raise WeakPasswordError("Password must contain an uppercase letter.")
    if not any(char.islower() for char in password):
        raise WeakPasswordError("Password must contain a lowercase letter.")
    if not any(char.isdigit() for char in password):
        raise WeakPasswordError("Password must contain a digit.")


def hash_secret_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class CredentialService:
    """Registers users, checks passwords and manages reset/verification secrets."""

    def __init__(
        self,
        user_repository: UserRepository,
        *,
        bcrypt_rounds: int = 12,
        reset_token_ttl: timedelta = timedelta(hours=1),
        verify_token_ttl: timedelta = timedelta(hours=24),
        clock: Clock = utc_now,
    ) -> None:
        self._users = user_repository
        self._bcrypt_rounds = bcrypt_rounds
        self._token_ttl: Dict[SecretPurpose, timedelta] = {
            SecretPurpose.RESET: reset_token_ttl,
            SecretPurpose.VERIFY: verify_token_ttl,
        }
        self._clock = clock
        # Compared against when the email is unknown so both failure paths cost one bcrypt check.
        self._dummy_hash = self._hash_password(secrets.token_urlsafe(16))

    # ------------------------------------------------------------------
    def register(self, email: str, password: str, name: Optional[str] = None) -> User:
        """
        Register a new user.

        Raises:
            MissingFieldError: If the email is blank
            WeakPasswordError: If the password fails the strength policy
            DuplicateEmailError: If the email is already registered (any letter case)
        """
        email_clean = normalize_email(email)
        if not email_clean:
            raise MissingFieldError("Email is required.")
        validate_password_strength(password)
        display_name = self._clean_name(name)

        if self._users.get_user_by_email(email_clean):
            raise DuplicateEmailError("Email already registered.")

        # The unique index still rejects a concurrent registration of the same email.
        user = self._users.create_user(
            email=email_clean,
            password_hash=self._hash_password(password),
            name=display_name,
        )
        logger.info("Registered user %s", user.id)
        return user

    def verify_credentials(self, email: str, password: str) -> User:
        user = self._users.get_user_by_email(normalize_email(email))
        if user is None:
            self._check_password(password, self._dummy_hash)
            raise InvalidCredentialsError("Invalid email or password.")
        if not self._check_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password.")
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        validate_password_strength(new_password)
        user = self._users.get_user_by_id(user_id)
        if user is None or not self._check_password(current_password, user.password_hash):
            raise InvalidCredentialsError("Current password is incorrect.")
        self._users.update_user_password(user.id, self._hash_password(new_password))
        logger.info("Password changed for user %s", user.id)

    # Secret tokens ----------------------------------------------------
    def issue_secret_token(self, user: User, purpose: SecretPurpose) -> Tuple[str, datetime]:
        """
        Generate a single-use secret for ``purpose``.

        Any earlier unconsumed secret of the same purpose is overwritten. Only the
        SHA-256 digest is stored; the raw value is returned once.
        """
        token = secrets.token_urlsafe(32)
        expires_at = self._clock() + self._token_ttl[purpose]
        self._users.store_secret_token(user.id, purpose, hash_secret_token(token), expires_at)
        logger.info("Issued %s token for user %s", purpose.value, user.id)
        return token, expires_at

    def consume_secret_token(
        self,
        token: str,
        purpose: SecretPurpose,
        *,
        new_password: Optional[str] = None,
    ) -> User:
        """
        Consume a reset or verification secret.

        A reset stores ``new_password``; a verification marks the email verified.
        The token is cleared in the same conditional write, so a second attempt fails.
        """
        new_password_hash = None
        if purpose is SecretPurpose.RESET:
            validate_password_strength(new_password)
            new_password_hash = self._hash_password(new_password)
        if not token:
            raise InvalidOrExpiredTokenError("Invalid or expired token.")

        user = self._users.consume_secret_token(
            purpose,
            hash_secret_token(token),
            self._clock(),
            new_password_hash=new_password_hash,
        )
        if user is None:
            raise InvalidOrExpiredTokenError("Invalid or expired token.")
        logger.info("Consumed %s token for user %s", purpose.value, user.id)
        return user

    def request_password_reset(self, email: str) -> Optional[str]:
        """Issue a reset secret if the email is registered. Callers must not reveal which case occurred."""
        user = self._users.get_user_by_email(normalize_email(email))
        if user is None:
            return None
        token, _ = self.issue_secret_token(user, SecretPurpose.RESET)
        return token

    # Profile ------------------------------------------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get_user_by_id(user_id)

    def update_profile(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        if name is None and email is None:
            raise ValidationError("No valid fields to update.")
        user = self._users.get_user_by_id(user_id)
        if user is None:
            raise InvalidCredentialsError("Account not found.")

        new_email = None
        if email is not None:
            new_email = normalize_email(email)
            if not new_email:
                raise MissingFieldError("Email is required.")
            if new_email == user.email:
                new_email = None
            else:
                existing = self._users.get_user_by_email(new_email)
                if existing and existing.id != user.id:
                    raise DuplicateEmailError("Email already registered.")

        return self._users.update_user_profile(
            user.id,
            name=self._clean_name(name) if name is not None else None,
            email=new_email,
        )

    def delete_account(self, user_id: int, password: str) -> None:
        user = self._users.get_user_by_id(user_id)
        if user is None or not self._check_password(password, user.password_hash):
            raise InvalidCredentialsError("Incorrect password.")
        self._users.delete_user(user.id)
        logger.info("Deleted account %s", user.id)

    # Helpers ------------------------------------------------------------
    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self._bcrypt_rounds)
        ).decode("utf-8")

    @staticmethod
    def _check_password(password: Optional[str], password_hash: str) -> bool:
        if not password:
            return False
        candidate = password.encode("utf-8")
        if len(candidate) > PASSWORD_MAX_BYTES:
            return False
        return bcrypt.checkpw(candidate, password_hash.encode("utf-8"))

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        clean = (name or "").strip()
        if len(clean) > NAME_MAX_LENGTH:
            raise ValidationError(f"Name must be at most {NAME_MAX_LENGTH} characters long.")
        return clean
