"""
Auto-Confirm Engine

AUTHORITY: SYSTEM
Default-accept policy: once a meal's cutoff has passed, every order that is
still pending becomes YES. Explicit decisions (yes/no) are never touched.

Key behaviors:
- Refuses future dates and, for today, refuses until the cutoff has passed
- Selects pending ids, then writes each one with a conditional UPDATE
  (status must still be pending), so a manual edit that lands first wins
- Commits per record; a failing record is rolled back alone
- Calling twice in a row processes nothing the second time

How the batch is triggered is a separate policy: an operator button only, or a
one-time suggestion per session once the cutoff has passed.
"""
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.db_models import MealType, ResponseStatus, ResponseSource
from ...models.timing import AutoConfirmResult, TimingInfo
from .errors import FutureDateError, CutoffNotReachedError, MealNotConfiguredError
from .preference_store import PreferenceStore
from .response_store import ResponseStore
from .state_machine import ResponseStateMachine
from .timing_resolver import TimingResolver, to_storage


# =============================================================================
# AUTO-CONFIRM ENGINE
# =============================================================================

class AutoConfirmEngine:
    """Batch pending -> yes transition for one (provider, date, meal)."""

    def __init__(self, db_session: Session, resolver: Optional[TimingResolver] = None):
        self.db = db_session
        self.store = ResponseStore(db_session)
        self.preferences = PreferenceStore(db_session)
        self.state_machine = ResponseStateMachine(db_session)
        self.resolver = resolver or TimingResolver()

    def check_preconditions(
        self,
        provider_id: str,
        menu_date: date,
        meal_type: MealType,
        now: datetime,
    ) -> str:
        """
        Validate the batch may run. Returns the cutoff time to record.
        """
        today = now.date()
        if menu_date > today:
            raise FutureDateError()

        preference = self.preferences.get(provider_id, meal_type)
        if preference is None or not preference.cutoff_time:
            raise MealNotConfiguredError(f"No cutoff time is configured for {meal_type.value}")

        # Past dates are past their cutoff by definition
        if menu_date == today:
            timing = self.resolver.resolve(preference, meal_type, now)
            if timing.can_respond:
                raise CutoffNotReachedError(
                    f"Auto-confirmation will only work after the cutoff time ({timing.cutoff_time})",
                    cutoff_time=timing.cutoff_time,
                )

        return preference.cutoff_time

    def _select_pending_ids(self, provider_id: str, menu_date: date, meal_type: MealType) -> List[str]:
        return self.store.pending_ids(provider_id, menu_date, meal_type)

    def _confirm_one(self, response_id: str, received_at: datetime, cutoff_time: str, actor_id: Optional[str]) -> bool:
        confirmed = self.store.confirm_if_pending(response_id, received_at, cutoff_time)
        if confirmed:
            self.state_machine.record(
                response_id=response_id,
                from_status=ResponseStatus.PENDING,
                to_status=ResponseStatus.YES,
                source=ResponseSource.AUTO,
                responded_before_cutoff=False,
                cutoff_time_used=cutoff_time,
                actor_id=actor_id,
                at=received_at,
            )
        self.db.commit()
        return confirmed

    def auto_confirm_pending(
        self,
        provider_id: str,
        menu_date: date,
        meal_type: MealType,
        now: datetime,
        actor_id: Optional[str] = None,
    ) -> AutoConfirmResult:
        meal_type = MealType(meal_type)
        cutoff_time = self.check_preconditions(provider_id, menu_date, meal_type, now)

        selected = self._select_pending_ids(provider_id, menu_date, meal_type)
        received_at = to_storage(now)

        processed = 0
        failed = []
        for response_id in selected:
            try:
                if self._confirm_one(response_id, received_at, cutoff_time, actor_id):
                    processed += 1
            except SQLAlchemyError:
                self.db.rollback()
                failed.append(response_id)

        return AutoConfirmResult(
            processed_count=processed,
            selected_count=len(selected),
            cutoff_time=cutoff_time,
            failed=tuple(failed),
        )


# =============================================================================
# TRIGGER POLICY
# =============================================================================

class TriggerPolicy(str, Enum):
    """How a provider-facing surface decides to offer auto-confirmation."""
    MANUAL = "manual"              # explicit button only
    SUGGEST_ONCE = "suggest_once"  # prompt once per session after cutoff


class SuggestionSession:
    """Per-session memory of which (date, meal) prompts were already shown."""

    def __init__(self):
        self._shown: Set[Tuple[date, MealType]] = set()

    def has_suggested(self, menu_date: date, meal_type: MealType) -> bool:
        return (menu_date, MealType(meal_type)) in self._shown

    def mark(self, menu_date: date, meal_type: MealType) -> None:
        self._shown.add((menu_date, MealType(meal_type)))


class AutoConfirmTrigger:
    """Applies a TriggerPolicy against an explicit SuggestionSession."""

    def __init__(self, policy: TriggerPolicy = TriggerPolicy.MANUAL, session: Optional[SuggestionSession] = None):
        self.policy = TriggerPolicy(policy)
        self.session = session or SuggestionSession()

    def should_suggest(
        self,
        menu_date: date,
        meal_type: MealType,
        pending_count: int,
        timing_info: Optional[TimingInfo],
        today: date,
    ) -> bool:
        """
        True at most once per (date, meal) per session, and only when there is
        something to confirm, the date is not in the future and the cutoff has
        passed (always the case for past dates). Returning True marks the
        prompt as shown.
        """
        if self.policy != TriggerPolicy.SUGGEST_ONCE:
            return False
        if pending_count <= 0 or menu_date > today:
            return False
        if menu_date == today and (timing_info is None or timing_info.can_respond):
            return False
        if self.session.has_suggested(menu_date, meal_type):
            return False

        self.session.mark(menu_date, meal_type)
        return True
