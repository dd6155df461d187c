"""
Tests for manual and automatic writes interleaving on the same record.

Each side uses its own session on a file-backed database, as two concurrent
requests would:
1. A manual decision that commits first is never confirmed by the auto path
2. An auto-confirm that commits while a manual decision is in flight keeps
   its audit fields; the manual decision is applied on top of it
3. A record that keeps changing under the writer gives up with a conflict
"""
import pytest
from unittest.mock import patch

from app.models.db_models import (
    MealType, ResponseStatus, ResponseSource, ResponseTransitionLogDB,
)
from app.models.timing import MealPreference
from app.services.responses import (
    AutoConfirmEngine, ResponseMutator, ResponseStore, TimingResolver, ResponseConflictError,
)

from conftest import at, add_provider, add_customers, TODAY


LUNCH = MealPreference(meal_type=MealType.LUNCH, enabled=True, price=80.0, cutoff_time="10:30 AM")


@pytest.fixture
def two_sessions(session_factory):
    manual_db = session_factory()
    auto_db = session_factory()
    try:
        yield manual_db, auto_db
    finally:
        manual_db.close()
        auto_db.close()


@pytest.fixture
def slot(two_sessions):
    """Three pending lunch responses for today, seeded through the manual session."""
    manual_db, _ = two_sessions
    provider = add_provider(manual_db)
    customers = add_customers(manual_db, provider)
    records = ResponseStore(manual_db).open_window(provider.id, [c.id for c in customers], TODAY, MealType.LUNCH)
    return {
        "provider_id": provider.id,
        "customer_ids": {c.name: c.id for c in customers},
        "response_ids": {c.name: r.id for c, r in zip(customers, records)},
    }


def log_for(db, response_id):
    return [
        (row.from_status.value, row.to_status.value, row.source.value)
        for row in db.query(ResponseTransitionLogDB).filter(
            ResponseTransitionLogDB.response_id == response_id
        ).all()
    ]


def fresh(db, response_id):
    db.expire_all()
    return ResponseStore(db).get(response_id)


# =============================================================================
# TEST: MANUAL DECISION COMMITS FIRST
# =============================================================================

class TestManualCommitsFirst:

    def test_decision_between_selection_and_write_is_kept(self, two_sessions, slot):
        manual_db, auto_db = two_sessions
        engine = AutoConfirmEngine(auto_db)
        select_pending = engine._select_pending_ids
        timing = TimingResolver().resolve(LUNCH, MealType.LUNCH, at(10, 29))

        def select_then_decline(*args):
            selected = select_pending(*args)
            ResponseMutator(manual_db).set_status(
                slot["customer_ids"]["Ravi"], TODAY, MealType.LUNCH, "no", at(10, 29), timing
            )
            return selected

        with patch.object(engine, "_select_pending_ids", side_effect=select_then_decline):
            result = engine.auto_confirm_pending(slot["provider_id"], TODAY, MealType.LUNCH, at(10, 30))

        assert result.selected_count == 3
        assert result.processed_count == 2

        ravi_id = slot["response_ids"]["Ravi"]
        ravi = fresh(auto_db, ravi_id)
        assert ravi.status == ResponseStatus.NO
        assert ravi.source == ResponseSource.MANUAL
        assert ravi.is_auto_detected is False
        assert ravi.responded_before_cutoff is True
        assert log_for(auto_db, ravi_id) == [("pending", "no", "manual")]


# =============================================================================
# TEST: AUTO-CONFIRM COMMITS WHILE A MANUAL DECISION IS IN FLIGHT
# =============================================================================

class TestAutoCommitsFirst:

    def test_auto_audit_fields_survive_late_manual_decision(self, two_sessions, slot):
        manual_db, auto_db = two_sessions
        mutator = ResponseMutator(manual_db)
        find = mutator.store.find
        timing = TimingResolver().resolve(LUNCH, MealType.LUNCH, at(10, 29))
        confirmed = []

        def find_then_auto_confirm(*args, **kwargs):
            response = find(*args, **kwargs)
            if not confirmed:
                result = AutoConfirmEngine(auto_db).auto_confirm_pending(
                    slot["provider_id"], TODAY, MealType.LUNCH, at(10, 30)
                )
                confirmed.append(result.processed_count)
            return response

        with patch.object(mutator.store, "find", side_effect=find_then_auto_confirm):
            mutator.set_status(slot["customer_ids"]["Meena"], TODAY, MealType.LUNCH, "no", at(10, 29), timing)

        assert confirmed == [3]

        meena_id = slot["response_ids"]["Meena"]
        meena = fresh(manual_db, meena_id)
        assert meena.status == ResponseStatus.NO
        assert meena.source == ResponseSource.MANUAL
        # Set by the auto transition out of pending, not rewritten by the manual edit
        assert meena.responded_before_cutoff is False
        assert meena.cutoff_time_used == "10:30 AM"

        log = log_for(manual_db, meena_id)
        assert sorted(log) == [("pending", "yes", "auto"), ("yes", "no", "manual")]
        assert [entry for entry in log if entry[0] == "pending"] == [("pending", "yes", "auto")]

    def test_other_records_stay_auto_confirmed(self, two_sessions, slot):
        manual_db, auto_db = two_sessions
        mutator = ResponseMutator(manual_db)
        find = mutator.store.find
        timing = TimingResolver().resolve(LUNCH, MealType.LUNCH, at(10, 29))
        ran = []

        def find_then_auto_confirm(*args, **kwargs):
            response = find(*args, **kwargs)
            if not ran:
                ran.append(True)
                AutoConfirmEngine(auto_db).auto_confirm_pending(
                    slot["provider_id"], TODAY, MealType.LUNCH, at(10, 30)
                )
            return response

        with patch.object(mutator.store, "find", side_effect=find_then_auto_confirm):
            mutator.set_status(slot["customer_ids"]["Asha"], TODAY, MealType.LUNCH, "yes", at(10, 29), timing)

        for name in ("Meena", "Ravi"):
            record = fresh(manual_db, slot["response_ids"][name])
            assert record.status == ResponseStatus.YES
            assert record.source == ResponseSource.AUTO
        asha = fresh(manual_db, slot["response_ids"]["Asha"])
        assert asha.source == ResponseSource.MANUAL
        assert asha.responded_before_cutoff is False


# =============================================================================
# TEST: WRITE CONFLICTS
# =============================================================================

class TestWriteConflict:

    def test_gives_up_after_repeated_conflicts(self, two_sessions, slot):
        manual_db, _ = two_sessions
        mutator = ResponseMutator(manual_db)
        timing = TimingResolver().resolve(LUNCH, MealType.LUNCH, at(9, 0))

        with patch.object(mutator.store, "update_if_status", return_value=False) as update:
            with pytest.raises(ResponseConflictError):
                mutator.set_status(slot["customer_ids"]["Asha"], TODAY, MealType.LUNCH, "yes", at(9, 0), timing)

        assert update.call_count == 3
        asha_id = slot["response_ids"]["Asha"]
        assert fresh(manual_db, asha_id).status == ResponseStatus.PENDING
        assert log_for(manual_db, asha_id) == []
