"""
Response Service

Main orchestration service for the meal response lifecycle.
Coordinates the preference store, timing resolver, mutator and auto-confirm
engine, and is the only layer that logs.

AUTHORITY MODEL:
- USER-AUTHORIZED: set_response (provider or customer decision),
  auto_confirm (provider presses the button or accepts the suggestion)
- SYSTEM-AUTHORITATIVE: the daily sweep that auto-confirms every slot whose
  cutoff has passed

TimingInfo is always re-resolved right before a mutation; a snapshot fetched
earlier by a screen is never trusted for the decision.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ...models.db_models import (
    MealType, ResponseSource, MealResponseDB, MealPreferenceDB,
)
from ...models.timing import AutoConfirmResult
from .auto_confirm import AutoConfirmEngine
from .errors import CustomerNotFoundError, ResponseEngineError
from .queries import ResponseQueryService
from .response_mutator import ResponseMutator
from .timing_resolver import TimingResolver, local_now

logger = logging.getLogger(__name__)


class ResponseService:
    """Entry point used by the API routers."""

    def __init__(self, db_session: Session, resolver: Optional[TimingResolver] = None):
        self.db = db_session
        self.resolver = resolver or TimingResolver()
        self.queries = ResponseQueryService(db_session, self.resolver)
        self.mutator = ResponseMutator(db_session)
        self.engine = AutoConfirmEngine(db_session, self.resolver)

    # =========================================================================
    # MANUAL RESPONSES
    # =========================================================================

    def set_response(
        self,
        provider_id: str,
        customer_id: str,
        menu_date: date,
        meal_type: MealType,
        status: str,
        source: ResponseSource = ResponseSource.MANUAL,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None,
    ) -> MealResponseDB:
        """
        Apply one yes/no decision.

        The customer must belong to the provider; timing is resolved fresh.
        """
        now = now or local_now()
        meal_type = MealType(meal_type)

        customer = self.mutator.store.get_customer(customer_id)
        if customer is None or customer.provider_id != provider_id:
            raise CustomerNotFoundError()

        timing = self.queries.get_meal_timing(provider_id, meal_type, now)

        try:
            response = self.mutator.set_status(
                customer_id=customer_id,
                menu_date=menu_date,
                meal_type=meal_type,
                new_status=status,
                now=now,
                timing_info=timing,
                source=source,
                provider_id=provider_id,
                actor_id=actor_id or provider_id,
            )
        except ResponseEngineError as e:
            logger.info(
                f"Rejected {meal_type.value} response for customer {customer_id} on {menu_date}: {e.code}"
            )
            raise

        logger.info(
            f"Customer {customer_id} {meal_type.value} on {menu_date} set to {response.status.value} "
            f"({response.source.value})"
        )
        return response

    # =========================================================================
    # AUTO-CONFIRMATION
    # =========================================================================

    def auto_confirm(
        self,
        provider_id: str,
        menu_date: date,
        meal_type: MealType,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None,
    ) -> AutoConfirmResult:
        now = now or local_now()
        meal_type = MealType(meal_type)

        result = self.engine.auto_confirm_pending(
            provider_id=provider_id,
            menu_date=menu_date,
            meal_type=meal_type,
            now=now,
            actor_id=actor_id,
        )

        logger.info(
            f"Auto-confirmed {result.processed_count}/{result.selected_count} pending "
            f"{meal_type.value} responses for provider {provider_id} on {menu_date} "
            f"(cutoff {result.cutoff_time})"
        )
        if result.failed:
            logger.error(
                f"Auto-confirm failed for {len(result.failed)} responses of provider {provider_id}: "
                f"{', '.join(result.failed)}"
            )
        return result


# =============================================================================
# AUTO-CONFIRM SWEEP (SYSTEM-AUTHORITATIVE)
# =============================================================================
#
# Invoked by an external cron through the internal endpoint. There is no
# in-process timer; each run evaluates "now" against every cutoff once.
#
# =============================================================================

class AutoConfirmSweep:
    """Auto-confirms today's pending orders for every slot past its cutoff."""

    def __init__(self, db_session: Session, resolver: Optional[TimingResolver] = None):
        self.db = db_session
        self.service = ResponseService(db_session, resolver)

    def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or local_now()
        today = now.date()

        slots = self.db.query(MealPreferenceDB).filter(
            MealPreferenceDB.enabled.is_(True),
            MealPreferenceDB.cutoff_time != "",
        ).all()

        processed = []
        skipped = 0
        errors = []

        for slot in slots:
            try:
                pending = self.service.queries.get_pending_count(slot.provider_id, today, slot.meal_type)
                timing = self.service.queries.get_meal_timing(slot.provider_id, slot.meal_type, now)
                if pending == 0 or timing is None or timing.can_respond:
                    skipped += 1
                    continue

                result = self.service.auto_confirm(slot.provider_id, today, slot.meal_type, now=now)
                processed.append({
                    "provider_id": slot.provider_id,
                    "meal_type": slot.meal_type.value,
                    **result.to_dict(),
                })
            except ResponseEngineError as e:
                logger.warning(f"Sweep skipped provider {slot.provider_id} {slot.meal_type.value}: {e.message}")
                errors.append({
                    "provider_id": slot.provider_id,
                    "meal_type": slot.meal_type.value,
                    "error": e.code,
                })

        logger.info(
            f"Auto-confirm sweep for {today}: {len(processed)} slots processed, "
            f"{skipped} skipped, {len(errors)} errors"
        )

        return {
            "run_date": today.isoformat(),
            "run_at": now.isoformat(),
            "slots_processed": len(processed),
            "responses_confirmed": sum(p["processedCount"] for p in processed),
            "skipped": skipped,
            "errors": len(errors),
            "details": {
                "processed": processed,
                "errors": errors,
            },
        }
