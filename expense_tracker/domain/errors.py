"""Exception taxonomy shared by the services and the HTTP layer."""


class ValidationError(ValueError):
    """Bad input shape or value; the caller can correct it."""


class WeakPasswordError(ValidationError):
    pass


class InvalidKindError(ValidationError):
    pass


class NonPositiveAmountError(ValidationError):
    pass


class MissingFieldError(ValidationError):
    pass


class UnauthorizedError(Exception):
    """Missing, malformed or expired session."""


class InvalidTokenError(UnauthorizedError):
    pass


class ExpiredTokenError(UnauthorizedError):
    pass


class InvalidCredentialsError(Exception):
    """Unknown email or wrong password. The two are never distinguished."""


class InvalidOrExpiredTokenError(Exception):
    """A reset or verification secret that is unknown, consumed or expired."""


class NotFoundError(LookupError):
    pass


class ForbiddenError(NotFoundError):
    """Resource exists under another owner. Folded into NotFoundError before leaving the ledger."""


class ConflictError(Exception):
    pass


class DuplicateEmailError(ConflictError):
    pass


class TransientStoreFailure(RuntimeError):
    """The durable store failed; not retried here."""
