"""
Response Mutator

Applies one explicit (manual or customer) yes/no decision to one record.

Guards, in order:
1. past dates are immutable, whatever the status value
2. status must be yes/no, source manual/customer
3. today's responses are closed once the cutoff has passed

The write is conditional on the status that was read. If an auto-confirm
commits in between, the record is re-read and the decision is applied to its
new state, so the audit fields of the earlier transition are never rewritten.
Writes and commits exactly one record plus its transition-log row.
"""
from datetime import date, datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ...models.db_models import MealType, ResponseStatus, ResponseSource, MealResponseDB
from ...models.timing import TimingInfo
from .errors import (
    PastDateError, CutoffPassedError, InvalidStatusError, MealNotConfiguredError,
    ResponseNotFoundError, ResponseConflictError,
)
from .response_store import ResponseStore
from .state_machine import ResponseStateMachine
from .timing_resolver import to_storage


MANUAL_SOURCES = (ResponseSource.MANUAL, ResponseSource.CUSTOMER)

# Re-reads allowed when the record changes between read and write
MAX_WRITE_ATTEMPTS = 3


class ResponseMutator:
    """Single-record status changes with past-date and cutoff enforcement."""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.store = ResponseStore(db_session)
        self.state_machine = ResponseStateMachine(db_session)

    def check_guards(
        self,
        menu_date: date,
        new_status,
        now: datetime,
        timing_info: Optional[TimingInfo],
        source: ResponseSource = ResponseSource.MANUAL,
    ) -> Tuple[ResponseStatus, ResponseSource]:
        """Run every pre-flight check without touching the store."""
        today = now.date()
        if menu_date < today:
            raise PastDateError()

        try:
            status = ResponseStatus(new_status)
        except ValueError:
            raise InvalidStatusError()
        if status == ResponseStatus.PENDING:
            raise InvalidStatusError()
        try:
            source = ResponseSource(source)
        except ValueError:
            source = None
        if source not in MANUAL_SOURCES:
            raise InvalidStatusError("Only manual or customer responses can be set directly")

        if menu_date == today:
            if timing_info is None:
                raise MealNotConfiguredError()
            if not timing_info.can_respond:
                raise CutoffPassedError(
                    timing_info.reason or f"Cutoff time {timing_info.cutoff_time} has passed",
                    cutoff_time=timing_info.cutoff_time,
                )

        return status, source

    def set_status(
        self,
        customer_id: str,
        menu_date: date,
        meal_type: MealType,
        new_status,
        now: datetime,
        timing_info: Optional[TimingInfo],
        source: ResponseSource = ResponseSource.MANUAL,
        provider_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> MealResponseDB:
        status, source = self.check_guards(menu_date, new_status, now, timing_info, source)
        received_at = to_storage(now)
        cutoff_time = timing_info.cutoff_time if timing_info else None

        for _ in range(MAX_WRITE_ATTEMPTS):
            response = self.store.find(customer_id, menu_date, meal_type, provider_id=provider_id)
            if response is None:
                raise ResponseNotFoundError()

            from_status = response.status
            changes = self.state_machine.manual_changes(
                from_status, status, source, received_at, cutoff_time
            )
            if self.store.update_if_status(response.id, from_status, changes):
                self.state_machine.record(
                    response_id=response.id,
                    from_status=from_status,
                    to_status=status,
                    source=source,
                    responded_before_cutoff=True,
                    cutoff_time_used=cutoff_time,
                    actor_id=actor_id,
                    at=received_at,
                )
                self.db.commit()
                return response

            # Someone else wrote first; drop the stale read and try again
            self.db.rollback()

        raise ResponseConflictError()
