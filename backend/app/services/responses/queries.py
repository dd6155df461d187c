"""
Response Queries

Read-only projections for provider screens: the daily list, the pending count
and today's timing snapshot. Nothing here writes or caches.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ...models.db_models import MealType, ResponseStatus, MealResponseDB
from ...models.timing import TimingInfo
from .preference_store import PreferenceStore
from .response_store import ResponseStore
from .timing_resolver import TimingResolver, local_now


class ResponseQueryService:
    """Daily listing, pending count and timing snapshot."""

    def __init__(self, db_session: Session, resolver: Optional[TimingResolver] = None):
        self.db = db_session
        self.store = ResponseStore(db_session)
        self.preferences = PreferenceStore(db_session)
        self.resolver = resolver or TimingResolver()

    def get_daily_responses(
        self,
        provider_id: str,
        menu_date: date,
        meal_type: MealType,
        status: Optional[ResponseStatus] = None,
    ) -> List[MealResponseDB]:
        """Responses of one slot, optionally only those with `status`."""
        if status is not None:
            status = ResponseStatus(status)
        return self.store.list_daily(provider_id, menu_date, MealType(meal_type), status)

    def get_daily_summary(self, provider_id: str, menu_date: date, meal_type: MealType) -> Dict[str, int]:
        """Yes/no/pending counts of one slot, for the stats strip above the list."""
        counts = self.store.count_by_status(provider_id, menu_date, MealType(meal_type))
        summary = {status.value: counts.get(status, 0) for status in ResponseStatus}
        summary["total"] = sum(counts.values())
        return summary

    def get_pending_count(self, provider_id: str, menu_date: date, meal_type: MealType) -> int:
        # Same predicate the auto-confirm batch selects with
        return self.store.count_pending(provider_id, menu_date, MealType(meal_type))

    def get_timing_info(self, provider_id: str, now: Optional[datetime] = None) -> Dict[MealType, TimingInfo]:
        """Today's snapshot for every enabled meal with a cutoff."""
        now = now or local_now()
        timing = {}
        for meal_type, preference in self.preferences.get_meal_service(provider_id).items():
            if not preference.enabled or not preference.cutoff_time:
                continue
            timing[meal_type] = self.resolver.resolve(preference, meal_type, now)
        return timing

    def get_meal_timing(self, provider_id: str, meal_type: MealType, now: datetime) -> Optional[TimingInfo]:
        """Fresh TimingInfo for one meal, or None if it has no cutoff."""
        meal_type = MealType(meal_type)
        preference = self.preferences.get(provider_id, meal_type)
        if preference is None or not preference.cutoff_time:
            return None
        return self.resolver.resolve(preference, meal_type, now)


# =============================================================================
# SERIALIZATION
# =============================================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() + "Z" if value.tzinfo is None else value.isoformat()


def serialize_response(response: MealResponseDB) -> Dict[str, Any]:
    """Wire shape used by the provider screens."""
    customer = response.customer
    return {
        "_id": response.id,
        "providerId": response.provider_id,
        "customerId": {
            "_id": customer.id,
            "name": customer.name,
            "phone": customer.phone,
        } if customer is not None else {"_id": response.customer_id},
        "menuDate": response.menu_date.isoformat(),
        "mealType": response.meal_type.value,
        "status": response.status.value,
        "responseReceivedAt": _iso(response.response_received_at),
        "source": response.source.value if response.source else None,
        "isAutoDetected": bool(response.is_auto_detected),
        "respondedBeforeCutoff": response.responded_before_cutoff,
        "cutoffTimeUsed": response.cutoff_time_used,
    }


def serialize_timing(timing: Dict[MealType, TimingInfo]) -> Dict[str, Any]:
    return {meal_type.value: info.to_dict() for meal_type, info in timing.items()}
