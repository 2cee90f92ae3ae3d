"""API router for registration, sessions and account management."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ....application.services.credential_service import CredentialService
from ....application.services.report_service import ReportService
from ....application.services.token_service import TokenService
from ....core.config import Settings
from ....core.dependencies import (
    get_credential_service,
    get_report_service,
    get_settings,
    get_token_service,
)
from ....domain.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    ValidationError,
)
from ....domain.models import SecretPurpose, User
from ...api.dependencies import require_current_user
from ...api.schemas.auth import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    MonthlyStatsResponse,
    ProfileResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SecretTokenResponse,
    SessionResponse,
    StatsResponse,
    UpdateProfileRequest,
    UserResponse,
    VerifyEmailRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

RESET_ACKNOWLEDGEMENT = "If the email exists, a password reset link has been sent"


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        email_verified=user.email_verified,
        created_at=user.created_at,
    )


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    credential_service: CredentialService = Depends(get_credential_service),
    token_service: TokenService = Depends(get_token_service),
) -> SessionResponse:
    """Register a new user and open a session."""
    try:
        user = credential_service.register(request.email, request.password, request.name)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return SessionResponse(
        message="User registered successfully",
        token=token_service.issue_session(user),
        user=_user_response(user),
    )


@router.post("/login", response_model=SessionResponse)
async def login(
    request: LoginRequest,
    credential_service: CredentialService = Depends(get_credential_service),
    token_service: TokenService = Depends(get_token_service),
) -> SessionResponse:
    """Login and get a session token."""
    try:
        user = credential_service.verify_credentials(request.email, request.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials") from exc

    logger.info("User %s logged in", user.id)
    return SessionResponse(
        message="Login successful",
        token=token_service.issue_session(user),
        user=_user_response(user),
    )


@router.post("/forgot-password", response_model=SecretTokenResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    credential_service: CredentialService = Depends(get_credential_service),
    settings: Settings = Depends(get_settings),
) -> SecretTokenResponse:
    """Issue a reset secret. The answer is identical whether or not the email exists."""
    token = credential_service.request_password_reset(request.email)
    return SecretTokenResponse(
        message=RESET_ACKNOWLEDGEMENT,
        token=token if settings.expose_secret_tokens else None,
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    credential_service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        credential_service.consume_secret_token(
            request.token,
            SecretPurpose.RESET,
            new_password=request.new_password,
        )
    except (ValidationError, InvalidOrExpiredTokenError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse(message="Password reset successfully")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    user: User = Depends(require_current_user),
    credential_service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        credential_service.change_password(user.id, request.current_password, request.new_password)
    except (ValidationError, InvalidCredentialsError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse(message="Password changed successfully")


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: User = Depends(require_current_user)) -> ProfileResponse:
    return ProfileResponse(user=_user_response(user))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    request: UpdateProfileRequest,
    user: User = Depends(require_current_user),
    credential_service: CredentialService = Depends(get_credential_service),
) -> ProfileResponse:
    try:
        updated = credential_service.update_profile(user.id, name=request.name, email=request.email)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ProfileResponse(user=_user_response(updated))


@router.post("/send-verification", response_model=SecretTokenResponse)
async def send_verification(
    user: User = Depends(require_current_user),
    credential_service: CredentialService = Depends(get_credential_service),
    settings: Settings = Depends(get_settings),
) -> SecretTokenResponse:
    if user.email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified")
    token, _ = credential_service.issue_secret_token(user, SecretPurpose.VERIFY)
    return SecretTokenResponse(
        message="Verification email sent",
        token=token if settings.expose_secret_tokens else None,
    )


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    request: VerifyEmailRequest,
    credential_service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        credential_service.consume_secret_token(request.token, SecretPurpose.VERIFY)
    except InvalidOrExpiredTokenError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse(message="Email verified successfully")


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    request: DeleteAccountRequest,
    user: User = Depends(require_current_user),
    credential_service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    """Delete the account and, through the cascade, every transaction it owns."""
    try:
        credential_service.delete_account(user.id, request.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse(message="Account deleted successfully")


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    user: User = Depends(require_current_user),
    report_service: ReportService = Depends(get_report_service),
) -> StatsResponse:
    stats = report_service.stats(user)
    return StatsResponse(
        total_transactions=stats.total_transactions,
        account_created=stats.account_created,
        email_verified=stats.email_verified,
        monthly_stats=[
            MonthlyStatsResponse(
                month=item.month,
                transaction_count=item.transaction_count,
                total_income=item.total_income,
                total_expenses=item.total_expense,
            )
            for item in stats.monthly
        ],
    )
