"""Pydantic schemas for ledger endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class TransactionCreateRequest(BaseModel):
    type: str
    amount: Decimal
    category: str
    description: Optional[str] = None
    timestamp: Optional[datetime] = None


class TransactionUpdateRequest(BaseModel):
    """Only the fields present in the body are changed. ``description: null`` clears it."""

    type: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    description: Optional[str] = None
    timestamp: Optional[datetime] = None


class TransactionResponse(BaseModel):
    id: int
    type: str
    amount: Decimal
    category: str
    description: Optional[str]
    timestamp: datetime
    created_at: datetime
    updated_at: datetime


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    pagination: PaginationResponse


class SummaryResponse(BaseModel):
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    category_breakdown: Dict[str, Decimal] = Field(default_factory=dict)


class CategoriesResponse(BaseModel):
    income: List[str]
    expense: List[str]
