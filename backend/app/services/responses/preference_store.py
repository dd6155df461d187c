"""
Preference Store

Per-provider meal settings (enabled, price, cutoff time). The response engine
only reads from here; the update path exists for the provider settings screen.
"""
from typing import Dict, Optional, Any
from uuid import uuid4

from sqlalchemy.orm import Session

from ...models.db_models import MealType, MealPreferenceDB
from ...models.timing import MealPreference
from .errors import InvalidPreferenceError, InvalidCutoffTimeError
from .timing_resolver import parse_cutoff_time


class PreferenceStore:
    """Reads and writes MealPreferenceDB rows."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def _rows(self, provider_id: str) -> Dict[MealType, MealPreferenceDB]:
        rows = self.db.query(MealPreferenceDB).filter(
            MealPreferenceDB.provider_id == provider_id
        ).all()
        return {row.meal_type: row for row in rows}

    def has_preferences(self, provider_id: str) -> bool:
        return self.db.query(MealPreferenceDB).filter(
            MealPreferenceDB.provider_id == provider_id
        ).count() > 0

    def get(self, provider_id: str, meal_type: MealType) -> Optional[MealPreference]:
        """Stored preference for one meal, or None if never saved."""
        row = self.db.query(MealPreferenceDB).filter(
            MealPreferenceDB.provider_id == provider_id,
            MealPreferenceDB.meal_type == meal_type,
        ).first()
        if row is None:
            return None
        return _to_preference(row)

    def get_meal_service(self, provider_id: str) -> Dict[MealType, MealPreference]:
        """Both meals, falling back to defaults for meals never saved."""
        rows = self._rows(provider_id)
        return {
            meal_type: _to_preference(rows[meal_type]) if meal_type in rows else MealPreference.default(meal_type)
            for meal_type in MealType
        }

    def update_meal_service(
        self,
        provider_id: str,
        meal_service: Dict[MealType, Dict[str, Any]],
    ) -> Dict[MealType, MealPreference]:
        """
        Save settings for the meals present in `meal_service`.

        An enabled meal needs a positive price and a parseable cutoff. A
        disabled meal is stored with price 0 and no cutoff.
        """
        validated = {}
        for meal_type, values in meal_service.items():
            validated[meal_type] = _validate(meal_type, values)

        rows = self._rows(provider_id)
        for meal_type, preference in validated.items():
            row = rows.get(meal_type)
            if row is None:
                row = MealPreferenceDB(
                    id=str(uuid4()),
                    provider_id=provider_id,
                    meal_type=meal_type,
                )
                self.db.add(row)
            row.enabled = preference.enabled
            row.price = preference.price
            row.cutoff_time = preference.cutoff_time

        self.db.commit()
        return self.get_meal_service(provider_id)


def _to_preference(row: MealPreferenceDB) -> MealPreference:
    return MealPreference(
        meal_type=row.meal_type,
        enabled=bool(row.enabled),
        price=float(row.price or 0),
        cutoff_time=row.cutoff_time or "",
    )


def _validate(meal_type: MealType, values: Dict[str, Any]) -> MealPreference:
    if not values.get("enabled"):
        return MealPreference.disabled(meal_type)

    try:
        price = float(values.get("price") or 0)
    except (TypeError, ValueError):
        price = 0.0
    if price <= 0:
        raise InvalidPreferenceError(f"Please enter a valid price for {meal_type.value}")

    cutoff_time = (values.get("cutoffTime") or "").strip()
    try:
        parse_cutoff_time(cutoff_time)
    except InvalidCutoffTimeError as e:
        raise InvalidPreferenceError(f"{e.message} for {meal_type.value}") from e

    return MealPreference(meal_type=meal_type, enabled=True, price=price, cutoff_time=cutoff_time)
