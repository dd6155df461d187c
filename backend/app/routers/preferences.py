"""
Meal Preference API Routes

Read and save the provider's per-meal settings (enabled, price, cutoff time).
The cutoff saved here is what the response engine evaluates.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_provider
from ..models.db_models import MealType, ProviderDB
from ..services.responses import PreferenceStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/Provider", tags=["preferences"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class MealPreferencePayload(BaseModel):
    """Settings for one meal."""
    enabled: bool = Field(default=False, description="Meal is offered")
    price: Optional[float] = Field(default=0, description="Price per meal")
    cutoffTime: Optional[str] = Field(default="", description="Last time to respond, e.g. '10:30 AM'")


class MealServiceRequest(BaseModel):
    """Request to save meal preferences. Omitted meals are left unchanged."""
    lunch: Optional[MealPreferencePayload] = None
    dinner: Optional[MealPreferencePayload] = None


def _meal_service_payload(store: PreferenceStore, provider_id: str) -> dict:
    meal_service = store.get_meal_service(provider_id)
    return {
        "mealService": {meal.value: pref.to_dict() for meal, pref in meal_service.items()},
        "hasMealPreferences": store.has_preferences(provider_id),
    }


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/preferences", response_model=dict)
async def get_preferences(
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """Get the provider's lunch and dinner settings (defaults if never saved)."""
    store = PreferenceStore(db)
    return {"success": True, "data": _meal_service_payload(store, current_provider.id)}


@router.post("/preferences", response_model=dict)
async def update_preferences(
    request: MealServiceRequest,
    db: Session = Depends(get_db),
    current_provider: ProviderDB = Depends(get_current_provider),
):
    """
    Save meal settings.

    An enabled meal needs a positive price and a valid cutoff time.
    Existing responses keep the cutoff they were decided under.
    """
    changes = {}
    if request.lunch is not None:
        changes[MealType.LUNCH] = request.lunch.model_dump()
    if request.dinner is not None:
        changes[MealType.DINNER] = request.dinner.model_dump()

    store = PreferenceStore(db)
    store.update_meal_service(current_provider.id, changes)

    logger.info(f"Meal preferences updated for provider {current_provider.id}: {sorted(m.value for m in changes)}")

    return {
        "success": True,
        "message": "Meal preferences updated successfully",
        "data": _meal_service_payload(store, current_provider.id),
    }
