"""
Tests for ResponseMutator and the transition log.

1. Past dates are immutable regardless of status or timing
2. Today's responses close at the cutoff
3. First transition records cutoff audit fields; later edits keep them
4. Each applied transition appends exactly one log row
"""
import pytest

from app.models.db_models import (
    MealType, ResponseStatus, ResponseSource, ResponseTransitionLogDB,
)
from app.models.timing import MealPreference, TimingInfo
from app.services.responses import (
    ResponseMutator, TimingResolver, PastDateError, CutoffPassedError,
    InvalidStatusError, MealNotConfiguredError, ResponseNotFoundError,
)

from conftest import at, TODAY, YESTERDAY, TOMORROW


LUNCH = MealPreference(meal_type=MealType.LUNCH, enabled=True, price=80.0, cutoff_time="10:30 AM")


def lunch_timing(now) -> TimingInfo:
    return TimingResolver().resolve(LUNCH, MealType.LUNCH, now)


def log_rows(db, response_id):
    return db.query(ResponseTransitionLogDB).filter(
        ResponseTransitionLogDB.response_id == response_id
    ).all()


# =============================================================================
# TEST: GUARDS
# =============================================================================

class TestMutationGuards:

    @pytest.mark.parametrize("status", ["yes", "no"])
    def test_past_date_rejected_for_any_status(self, db_session, seeded, status):
        mutator = ResponseMutator(db_session)
        open_timing = lunch_timing(at(9, 0))
        customer = seeded.customers["Asha"]

        with pytest.raises(PastDateError):
            mutator.set_status(customer.id, YESTERDAY, MealType.LUNCH, status, at(9, 0), open_timing)

        record = seeded.responses[YESTERDAY]["Asha"]
        db_session.refresh(record)
        assert record.status == ResponseStatus.PENDING
        assert log_rows(db_session, record.id) == []

    @pytest.mark.parametrize("status", ["yes", "pending", "maybe", ""])
    def test_past_date_checked_before_status(self, db_session, seeded, status):
        mutator = ResponseMutator(db_session)

        with pytest.raises(PastDateError):
            mutator.check_guards(YESTERDAY, status, at(9, 0), None)

        with pytest.raises(PastDateError):
            mutator.set_status(seeded.customers["Asha"].id, YESTERDAY, MealType.LUNCH, status, at(9, 0), None)

    def test_cutoff_passed_today(self, db_session, seeded):
        now = at(10, 31)
        mutator = ResponseMutator(db_session)

        with pytest.raises(CutoffPassedError) as exc_info:
            mutator.set_status(
                seeded.customers["Ravi"].id, TODAY, MealType.LUNCH, "yes", now, lunch_timing(now)
            )

        assert exc_info.value.cutoff_time == "10:30 AM"
        assert exc_info.value.to_payload() == {
            "success": False,
            "error": "cutoff_passed",
            "message": "Cutoff time 10:30 AM has passed",
            "cutoffTime": "10:30 AM",
        }

    def test_today_without_configured_meal(self, db_session, seeded):
        with pytest.raises(MealNotConfiguredError):
            ResponseMutator(db_session).check_guards(TODAY, "no", at(9, 0), None)

    @pytest.mark.parametrize("status", ["pending", "maybe", ""])
    def test_invalid_status(self, db_session, status):
        with pytest.raises(InvalidStatusError):
            ResponseMutator(db_session).check_guards(TOMORROW, status, at(9, 0), None)

    @pytest.mark.parametrize("source", ["auto", "robot"])
    def test_auto_or_unknown_source_rejected(self, db_session, source):
        with pytest.raises(InvalidStatusError):
            ResponseMutator(db_session).check_guards(TOMORROW, "yes", at(9, 0), None, source=source)

    def test_string_source_normalized(self, db_session):
        status, source = ResponseMutator(db_session).check_guards(
            TOMORROW, "no", at(9, 0), None, source="customer"
        )

        assert status == ResponseStatus.NO
        assert source == ResponseSource.CUSTOMER

    def test_missing_record(self, db_session, seeded):
        now = at(9, 0)
        with pytest.raises(ResponseNotFoundError):
            ResponseMutator(db_session).set_status(
                seeded.customers["Asha"].id, TODAY, MealType.DINNER, "yes", now, lunch_timing(now)
            )


# =============================================================================
# TEST: APPLYING DECISIONS
# =============================================================================

class TestSetStatus:

    def test_before_cutoff_records_audit_fields(self, db_session, seeded):
        now = at(10, 29)
        customer = seeded.customers["Meena"]

        response = ResponseMutator(db_session).set_status(
            customer.id, TODAY, MealType.LUNCH, "no", now, lunch_timing(now), actor_id="provider-1"
        )

        assert response.status == ResponseStatus.NO
        assert response.source == ResponseSource.MANUAL
        assert response.is_auto_detected is False
        assert response.responded_before_cutoff is True
        assert response.cutoff_time_used == "10:30 AM"
        assert response.response_received_at is not None

        rows = log_rows(db_session, response.id)
        assert len(rows) == 1
        assert rows[0].from_status == ResponseStatus.PENDING
        assert rows[0].to_status == ResponseStatus.NO
        assert rows[0].actor_id == "provider-1"

    def test_re_edit_keeps_first_audit_fields(self, db_session, seeded):
        customer = seeded.customers["Asha"]
        mutator = ResponseMutator(db_session)

        first = mutator.set_status(customer.id, TODAY, MealType.LUNCH, "yes", at(9, 0), lunch_timing(at(9, 0)))
        later_timing = TimingInfo(
            meal_type=MealType.LUNCH, cutoff_time="11:00 AM", can_respond=True, current_time="10:00 AM"
        )
        second = mutator.set_status(customer.id, TODAY, MealType.LUNCH, "no", at(10, 0), later_timing)

        assert second.id == first.id
        assert second.status == ResponseStatus.NO
        assert second.cutoff_time_used == "10:30 AM"
        assert second.responded_before_cutoff is True
        assert len(log_rows(db_session, second.id)) == 2

    def test_future_date_allowed_after_todays_cutoff(self, db_session, seeded):
        now = at(20, 0)

        response = ResponseMutator(db_session).set_status(
            seeded.customers["Ravi"].id, TOMORROW, MealType.LUNCH, "yes", now, lunch_timing(now),
            source=ResponseSource.CUSTOMER,
        )

        assert response.status == ResponseStatus.YES
        assert response.source == ResponseSource.CUSTOMER
        assert response.cutoff_time_used == "10:30 AM"
