"""Pydantic schemas for account and session endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None


class DeleteAccountRequest(BaseModel):
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    email_verified: bool
    created_at: datetime


class SessionResponse(BaseModel):
    """Returned by register and login."""

    message: str
    token: str
    token_type: str = "bearer"
    user: UserResponse


class ProfileResponse(BaseModel):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class SecretTokenResponse(BaseModel):
    """Acknowledgement; the secret is only echoed when EXPOSE_SECRET_TOKENS is on."""

    message: str
    token: Optional[str] = None


class MonthlyStatsResponse(BaseModel):
    month: str
    transaction_count: int
    total_income: Decimal
    total_expenses: Decimal


class StatsResponse(BaseModel):
    total_transactions: int
    account_created: date
    email_verified: bool
    monthly_stats: List[MonthlyStatsResponse]
