"""API router for the owner-scoped transaction ledger."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....application.services.ledger_service import TransactionLedger, parse_kind
from ....application.services.report_service import ReportService
from ....core.dependencies import get_ledger, get_report_service
from ....domain.errors import NotFoundError, ValidationError
from ....domain.models import Principal, Transaction, TransactionChanges, TransactionFilters
from ...api.dependencies import require_principal
from ...api.schemas.auth import MessageResponse
from ...api.schemas.transactions import (
    PaginationResponse,
    SummaryResponse,
    TransactionCreateRequest,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdateRequest,
)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _serialize_transaction(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        type=transaction.kind.value,
        amount=transaction.amount,
        category=transaction.category,
        description=transaction.description,
        timestamp=transaction.timestamp,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
    )


def _build_filters(
    kind: Optional[str],
    category: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
) -> TransactionFilters:
    try:
        return TransactionFilters(
            kind=parse_kind(kind) if kind else None,
            category=category or None,
            date_from=start_date,
            date_to=end_date,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    type: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None, description="Inclusive, compared against the UTC calendar day."),
    end_date: Optional[date] = Query(default=None, description="Inclusive, compared against the UTC calendar day."),
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    principal: Principal = Depends(require_principal),
    ledger: TransactionLedger = Depends(get_ledger),
) -> TransactionListResponse:
    filters = _build_filters(type, category, start_date, end_date)
    try:
        result = ledger.list_transactions(principal.user_id, filters, page=page, page_size=limit)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return TransactionListResponse(
        items=[_serialize_transaction(item) for item in result.items],
        pagination=PaginationResponse(
            page=result.page,
            limit=result.page_size,
            total=result.total,
            pages=result.pages,
        ),
    )


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreateRequest,
    principal: Principal = Depends(require_principal),
    ledger: TransactionLedger = Depends(get_ledger),
) -> TransactionResponse:
    try:
        transaction = ledger.create_transaction(
            principal.user_id,
            kind=payload.type,
            amount=payload.amount,
            category=payload.category,
            description=payload.description,
            timestamp=payload.timestamp,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize_transaction(transaction)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    type: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    principal: Principal = Depends(require_principal),
    report_service: ReportService = Depends(get_report_service),
) -> SummaryResponse:
    filters = _build_filters(type, category, start_date, end_date)
    try:
        summary = report_service.summary(principal.user_id, filters)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return SummaryResponse(
        total_income=summary.total_income,
        total_expenses=summary.total_expense,
        balance=summary.balance,
        category_breakdown=summary.category_breakdown,
    )


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: int,
    payload: TransactionUpdateRequest,
    principal: Principal = Depends(require_principal),
    ledger: TransactionLedger = Depends(get_ledger),
) -> TransactionResponse:
    supplied = payload.model_dump(include=payload.model_fields_set)
    changes = TransactionChanges(
        **{("kind" if name == "type" else name): value for name, value in supplied.items()}
    )
    try:
        transaction = ledger.update_transaction(principal.user_id, transaction_id, changes)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found") from exc
    return _serialize_transaction(transaction)


@router.delete("/{transaction_id}", response_model=MessageResponse)
async def delete_transaction(
    transaction_id: int,
    principal: Principal = Depends(require_principal),
    ledger: TransactionLedger = Depends(get_ledger),
) -> MessageResponse:
    try:
        ledger.delete_transaction(principal.user_id, transaction_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found") from exc
    return MessageResponse(message="Transaction deleted successfully")
