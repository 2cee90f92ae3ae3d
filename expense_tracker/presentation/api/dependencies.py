import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.credential_service import CredentialService
from ...application.services.token_service import TokenService
from ...core.dependencies import get_credential_service, get_token_service
from ...domain.errors import UnauthorizedError
from ...domain.models import Principal, User

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

UNAUTHORIZED_DETAIL = "Invalid or expired token"


def authenticate(
    credentials: Optional[HTTPAuthorizationCredentials],
    token_service: TokenService,
) -> Principal:
    """Resolve a bearer credential to a principal without touching the store."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Missing or malformed Authorization header.")
    token = credentials.credentials.strip()
    if not token:
        raise UnauthorizedError("Empty bearer token.")
    return token_service.verify_session(token)


def require_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> Principal:
    try:
        principal = authenticate(credentials, token_service)
    except UnauthorizedError as exc:
        # The reason stays in the logs; callers always get the same answer.
        logger.debug("Rejected session on %s: %s", request.url.path, exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    request.state.principal = principal
    return principal


def require_current_user(
    principal: Principal = Depends(require_principal),
    credential_service: CredentialService = Depends(get_credential_service),
) -> User:
    """Load the account behind the session, for operations on the account itself."""
    user = credential_service.get_user(principal.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
