"""
Meal Response API Routes

Endpoints for the provider response screens.
Handles the daily listing, timing snapshot, pending count, manual responses
and auto-confirmation of pending orders after cutoff.

Engine rejections (past date, cutoff passed, cutoff not reached, ...) are
turned into `{success: false, error, message, cutoffTime?}` by the exception
handler registered in app.main.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_provider, ensure_provider_access
from ..models.db_models import MealType, ResponseStatus, ResponseSource, ProviderDB
from ..services.responses import (
    ResponseService, ResponseQueryService, serialize_response, serialize_timing,
)


router = APIRouter(prefix="/api", tags=["responses"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SetResponseRequest(BaseModel):
    """Request to record a yes/no decision for one customer and meal."""
    customerId: str = Field(..., description="Customer the response belongs to")
    menuDate: date = Field(..., description="Menu date (YYYY-MM-DD)")
    mealType: MealType = Field(..., description="lunch or dinner")
    status: str = Field(..., description="yes or no")
    source: ResponseSource = Field(default=ResponseSource.MANUAL, description="manual or customer")


class AutoConfirmRequest(BaseModel):
    """Request to auto-confirm every pending response of a slot."""
    model_config = ConfigDict(populate_by_name=True)

    providerId: Optional[str] = Field(None, description="Defaults to the authenticated provider")
    menu_date: date = Field(..., alias="date", description="Menu date (YYYY-MM-DD)")
    mealType: MealType = Field(..., description="lunch or dinner")


# =============================================================================
# READ ENDPOINTS
# =============================================================================

@router.get("/responses/daily", response_model=dict)
async def get_daily_responses(
    date: date = Query(..., description="Menu date (YYYY-MM-DD)"),
    mealType: MealType = Query(..., description="lunch or dinner"),
    status: Optional[ResponseStatus] = Query(None, description="Only yes, no or pending responses"),
    providerId: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """
    List the responses for one date and meal, with customer details.

    The summary always counts the whole slot, whatever `status` filters.
    """
    provider_id = ensure_provider_access(current_provider, providerId)
    queries = ResponseQueryService(db)
    responses = queries.get_daily_responses(provider_id, date, mealType, status)

    return {
        "success": True,
        "data": {
            "responses": [serialize_response(r) for r in responses],
            "summary": queries.get_daily_summary(provider_id, date, mealType),
        },
    }


@router.get("/responses/timing", response_model=dict)
async def get_timing(
    providerId: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """Today's cutoff status for each enabled meal."""
    provider_id = ensure_provider_access(current_provider, providerId)
    timing = ResponseQueryService(db).get_timing_info(provider_id)

    return {"success": True, "data": {"timing": serialize_timing(timing)}}


@router.get("/responses/pending", response_model=dict)
async def get_pending_count(
    date: date = Query(..., description="Menu date (YYYY-MM-DD)"),
    mealType: MealType = Query(..., description="lunch or dinner"),
    providerId: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """Number of responses auto-confirmation would process."""
    provider_id = ensure_provider_access(current_provider, providerId)
    pending_count = ResponseQueryService(db).get_pending_count(provider_id, date, mealType)

    return {"success": True, "data": {"pendingCount": pending_count}}


# =============================================================================
# MUTATING ENDPOINTS
# =============================================================================

@router.post("/response", response_model=dict)
async def set_response(
    request: SetResponseRequest,
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """
    Set one customer's response to yes or no.

    Rejected for past dates and, for today, once the meal's cutoff has passed.
    """
    service = ResponseService(db)
    response = service.set_response(
        provider_id=current_provider.id,
        customer_id=request.customerId,
        menu_date=request.menuDate,
        meal_type=request.mealType,
        status=request.status,
        source=request.source,
    )

    return {
        "success": True,
        "message": f"{request.mealType.value.capitalize()} response updated to {response.status.value.upper()}",
        "data": serialize_response(response),
    }


def _auto_confirm(request: AutoConfirmRequest, db: Session, current_provider: ProviderDB) -> dict:
    provider_id = ensure_provider_access(current_provider, request.providerId)
    result = ResponseService(db).auto_confirm(
        provider_id=provider_id,
        menu_date=request.menu_date,
        meal_type=request.mealType,
        actor_id=current_provider.id,
    )
    count = result.processed_count
    return {
        "success": True,
        "message": f"Auto-confirmed {count} pending customer{'' if count == 1 else 's'} as YES",
        "data": result.to_dict(),
    }


@router.post("/responses/auto-confirm-pending", response_model=dict)
async def auto_confirm_pending(
    request: AutoConfirmRequest,
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """
    Confirm every still-pending response of a slot as YES.

    Only for today (after cutoff) or past dates. Explicit yes/no answers are
    never changed; calling again confirms nothing.
    """
    return _auto_confirm(request, db, current_provider)


@router.post("/responses/auto-process", response_model=dict)
async def auto_process(
    request: AutoConfirmRequest,
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """Older name of auto-confirm-pending, still called by the first response screen."""
    return _auto_confirm(request, db, current_provider)
