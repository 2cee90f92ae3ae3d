"""Stateless signed session tokens."""

from __future__ import annotations

import logging
from datetime import timedelta

import jwt

from ...core.clock import Clock, utc_now
from ...domain.errors import ExpiredTokenError, InvalidTokenError
from ...domain.models import Principal, User

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "change-me"


class TokenService:
    """
    Issues and verifies JWT session tokens.

    Tokens are never persisted: validity depends only on the signature and the
    embedded expiry. Replacing the signing secret invalidates every outstanding
    session, and a token cannot be revoked before it expires.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
        clock: Clock = utc_now,
    ) -> None:
        if not secret_key:
            raise RuntimeError("SESSION_TOKEN_SECRET is not configured.")
        if secret_key == DEFAULT_SECRET:
            logger.warning(
                "SESSION_TOKEN_SECRET is using the default value. Configure a strong secret in production."
            )
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._clock = clock

    def issue_session(self, user: User) -> str:
        issued_at = self._clock()
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._lifetime).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify_session(self, token: str) -> Principal:
        """
        Resolve a session token to the principal it was issued for.

        Raises:
            InvalidTokenError: Signature mismatch, wrong algorithm or malformed claims
            ExpiredTokenError: Signature is valid but the expiry has passed
        """
        try:
            # Expiry is checked below against the injected clock, after the signature.
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["sub", "email", "iat", "exp"],
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(f"Token rejected: {exc}") from exc

        try:
            user_id = int(payload["sub"])
            expires_at = int(payload["exp"])
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("Token claims are malformed.") from exc
        email = payload["email"]
        if not isinstance(email, str):
            raise InvalidTokenError("Token claims are malformed.")

        if self._clock().timestamp() >= expires_at:
            raise ExpiredTokenError("Token has expired.")
        return Principal(user_id=user_id, email=email)
