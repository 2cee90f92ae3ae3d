from fastapi import APIRouter, Depends

from ....application.services.ledger_service import TransactionLedger
from ....core.dependencies import get_ledger
from ....domain.models import Principal, TransactionKind
from ...api.dependencies import require_principal
from ...api.schemas.transactions import CategoriesResponse

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=CategoriesResponse)
async def list_categories(
    principal: Principal = Depends(require_principal),
    ledger: TransactionLedger = Depends(get_ledger),
) -> CategoriesResponse:
    return CategoriesResponse(
        income=ledger.distinct_categories(principal.user_id, TransactionKind.INCOME),
        expense=ledger.distinct_categories(principal.user_id, TransactionKind.EXPENSE),
    )
