"""
Response State Machine

Declares which status transitions each source may perform and records every
applied transition in the append-only transition log.

    manual/customer: pending|yes|no -> yes|no
    auto:            pending -> yes

`yes` and `no` are terminal for the auto path.
"""
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from ...models.db_models import (
    ResponseStatus, ResponseSource, MealResponseDB, ResponseTransitionLogDB,
)


# =============================================================================
# TRANSITION TABLE
# =============================================================================

_EXPLICIT_TARGETS = [ResponseStatus.YES, ResponseStatus.NO]

TRANSITIONS = {
    ResponseSource.MANUAL: {
        ResponseStatus.PENDING: _EXPLICIT_TARGETS,
        ResponseStatus.YES: _EXPLICIT_TARGETS,
        ResponseStatus.NO: _EXPLICIT_TARGETS,
    },
    ResponseSource.CUSTOMER: {
        ResponseStatus.PENDING: _EXPLICIT_TARGETS,
        ResponseStatus.YES: _EXPLICIT_TARGETS,
        ResponseStatus.NO: _EXPLICIT_TARGETS,
    },
    ResponseSource.AUTO: {
        ResponseStatus.PENDING: [ResponseStatus.YES],
    },
}


class ResponseStateMachine:
    """Validates transitions and writes transition-log rows."""

    def __init__(self, db_session):
        self.db = db_session

    def can_transition(
        self,
        from_status: ResponseStatus,
        to_status: ResponseStatus,
        source: ResponseSource,
    ) -> Tuple[bool, str]:
        """Returns (allowed, reason)."""
        allowed = TRANSITIONS.get(source, {}).get(from_status, [])
        if to_status in allowed:
            return True, "Transition allowed"
        return False, (
            f"{source.value} cannot move a response from {from_status.value} to {to_status.value}"
        )

    def is_terminal_for(self, status: ResponseStatus, source: ResponseSource) -> bool:
        return not TRANSITIONS.get(source, {}).get(status)

    def record(
        self,
        response_id: str,
        from_status: ResponseStatus,
        to_status: ResponseStatus,
        source: ResponseSource,
        responded_before_cutoff: bool,
        cutoff_time_used: Optional[str],
        actor_id: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> ResponseTransitionLogDB:
        """Append one transition-log row (not committed here)."""
        entry = ResponseTransitionLogDB(
            id=str(uuid4()),
            response_id=response_id,
            from_status=from_status,
            to_status=to_status,
            source=source,
            actor_id=actor_id,
            responded_before_cutoff=responded_before_cutoff,
            cutoff_time_used=cutoff_time_used,
            created_at=at or datetime.utcnow(),
        )
        self.db.add(entry)
        return entry

    def manual_changes(
        self,
        from_status: ResponseStatus,
        to_status: ResponseStatus,
        source: ResponseSource,
        received_at: datetime,
        cutoff_time: Optional[str],
    ) -> Dict[Any, Any]:
        """
        Column values for an explicit (manual or customer) decision made
        against a record whose status is `from_status`.

        The cutoff audit fields only document the first transition out of
        pending; later edits leave them alone.
        """
        allowed, reason = self.can_transition(from_status, to_status, source)
        if not allowed:
            raise ValueError(reason)

        changes = {
            MealResponseDB.status: to_status,
            MealResponseDB.source: source,
            MealResponseDB.is_auto_detected: False,
            MealResponseDB.response_received_at: received_at,
            MealResponseDB.updated_at: datetime.utcnow(),
        }
        if from_status == ResponseStatus.PENDING:
            changes[MealResponseDB.responded_before_cutoff] = True
            changes[MealResponseDB.cutoff_time_used] = cutoff_time
        return changes
