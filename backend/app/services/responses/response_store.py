"""
Response Store

Durable MealResponseDB records keyed by (provider, customer, date, meal).

The pending selection predicate lives here once so that the pending count and
the auto-confirm batch can never disagree about what "pending" means.
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models.db_models import (
    MealType, ResponseStatus, ResponseSource, MealResponseDB, CustomerDB,
)


class ResponseStore:
    """Query and write helpers for meal responses."""

    def __init__(self, db_session: Session):
        self.db = db_session

    # =========================================================================
    # READS
    # =========================================================================

    def _slot_query(self, provider_id: str, menu_date: date, meal_type: MealType):
        return self.db.query(MealResponseDB).filter(
            MealResponseDB.provider_id == provider_id,
            MealResponseDB.menu_date == menu_date,
            MealResponseDB.meal_type == meal_type,
        )

    def pending_query(self, provider_id: str, menu_date: date, meal_type: MealType):
        """The selection predicate shared by pending count and auto-confirm."""
        return self._slot_query(provider_id, menu_date, meal_type).filter(
            MealResponseDB.status == ResponseStatus.PENDING
        )

    def list_daily(
        self,
        provider_id: str,
        menu_date: date,
        meal_type: MealType,
        status: Optional[ResponseStatus] = None,
    ) -> List[MealResponseDB]:
        query = self._slot_query(provider_id, menu_date, meal_type)
        if status is not None:
            query = query.filter(MealResponseDB.status == status)
        return (
            query
            .join(CustomerDB, MealResponseDB.customer_id == CustomerDB.id)
            .options(joinedload(MealResponseDB.customer))
            .order_by(CustomerDB.name, MealResponseDB.id)
            .all()
        )

    def count_pending(self, provider_id: str, menu_date: date, meal_type: MealType) -> int:
        return self.pending_query(provider_id, menu_date, meal_type).count()

    def count_by_status(self, provider_id: str, menu_date: date, meal_type: MealType) -> Dict[ResponseStatus, int]:
        rows = (
            self._slot_query(provider_id, menu_date, meal_type)
            .with_entities(MealResponseDB.status, func.count(MealResponseDB.id))
            .group_by(MealResponseDB.status)
            .all()
        )
        return {status: count for status, count in rows}

    def pending_ids(self, provider_id: str, menu_date: date, meal_type: MealType) -> List[str]:
        rows = self.pending_query(provider_id, menu_date, meal_type).with_entities(MealResponseDB.id).all()
        return [row[0] for row in rows]

    def get(self, response_id: str) -> Optional[MealResponseDB]:
        return self.db.query(MealResponseDB).filter(MealResponseDB.id == response_id).first()

    def find(
        self,
        customer_id: str,
        menu_date: date,
        meal_type: MealType,
        provider_id: Optional[str] = None,
    ) -> Optional[MealResponseDB]:
        query = self.db.query(MealResponseDB).filter(
            MealResponseDB.customer_id == customer_id,
            MealResponseDB.menu_date == menu_date,
            MealResponseDB.meal_type == meal_type,
        )
        if provider_id is not None:
            query = query.filter(MealResponseDB.provider_id == provider_id)
        return query.first()

    def get_customer(self, customer_id: str) -> Optional[CustomerDB]:
        return self.db.query(CustomerDB).filter(CustomerDB.id == customer_id).first()

    # =========================================================================
    # WRITES
    # =========================================================================

    def open_window(
        self,
        provider_id: str,
        customer_ids: Iterable[str],
        menu_date: date,
        meal_type: MealType,
    ) -> List[MealResponseDB]:
        """
        Create pending responses for customers that have none for this slot.

        Idempotent: existing records are returned untouched.
        """
        existing = {
            r.customer_id: r
            for r in self._slot_query(provider_id, menu_date, meal_type).all()
        }
        records = []
        for customer_id in customer_ids:
            record = existing.get(customer_id)
            if record is None:
                record = MealResponseDB(
                    id=str(uuid4()),
                    provider_id=provider_id,
                    customer_id=customer_id,
                    menu_date=menu_date,
                    meal_type=meal_type,
                    status=ResponseStatus.PENDING,
                    is_auto_detected=False,
                )
                self.db.add(record)
                existing[customer_id] = record
            records.append(record)
        self.db.commit()
        return records

    def confirm_if_pending(
        self,
        response_id: str,
        received_at: datetime,
        cutoff_time: str,
    ) -> bool:
        """
        Conditional write: pending -> yes with auto provenance.

        Returns False when the record is no longer pending at write time.
        """
        updated = self.db.query(MealResponseDB).filter(
            MealResponseDB.id == response_id,
            MealResponseDB.status == ResponseStatus.PENDING,
        ).update(
            {
                MealResponseDB.status: ResponseStatus.YES,
                MealResponseDB.source: ResponseSource.AUTO,
                MealResponseDB.is_auto_detected: True,
                MealResponseDB.response_received_at: received_at,
                MealResponseDB.responded_before_cutoff: False,
                MealResponseDB.cutoff_time_used: cutoff_time,
                MealResponseDB.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        return updated == 1

    def update_if_status(
        self,
        response_id: str,
        expected_status: ResponseStatus,
        changes: Dict[Any, Any],
    ) -> bool:
        """
        Conditional write for explicit decisions.

        Returns False when the record's status changed since it was read.
        """
        updated = self.db.query(MealResponseDB).filter(
            MealResponseDB.id == response_id,
            MealResponseDB.status == expected_status,
        ).update(changes, synchronize_session=False)
        return updated == 1
