"""
Tiffin Response Engine - Value Objects

Plain dataclasses passed between the preference store, the timing resolver and
the API layer. None of these are persisted directly.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .db_models import MealType


# Cutoffs used when a provider has never saved meal preferences
DEFAULT_CUTOFFS = {
    MealType.LUNCH: "10:30 AM",
    MealType.DINNER: "06:30 PM",
}


@dataclass(frozen=True)
class MealPreference:
    """A provider's settings for one meal slot."""
    meal_type: MealType
    enabled: bool = False
    price: float = 0.0
    cutoff_time: str = ""

    @classmethod
    def default(cls, meal_type: MealType) -> "MealPreference":
        return cls(meal_type=meal_type, cutoff_time=DEFAULT_CUTOFFS[meal_type])

    @classmethod
    def disabled(cls, meal_type: MealType) -> "MealPreference":
        return cls(meal_type=meal_type, enabled=False, price=0.0, cutoff_time="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "price": self.price,
            "cutoffTime": self.cutoff_time,
        }


@dataclass(frozen=True)
class TimingInfo:
    """
    Whether manual responses are still accepted today for one meal.

    `reason` is only set when `can_respond` is False.
    """
    meal_type: MealType
    cutoff_time: str
    can_respond: bool
    current_time: str
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "cutoffTime": self.cutoff_time,
            "canRespond": self.can_respond,
            "currentTime": self.current_time,
            "mealType": self.meal_type.value,
        }
        if self.reason is not None:
            data["reason"] = self.reason
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimingInfo":
        return cls(
            meal_type=MealType(data["mealType"]),
            cutoff_time=data.get("cutoffTime", ""),
            can_respond=bool(data.get("canRespond", True)),
            current_time=data.get("currentTime", ""),
            reason=data.get("reason"),
        )


@dataclass(frozen=True)
class AutoConfirmResult:
    """Outcome of one batch auto-confirmation."""
    processed_count: int
    selected_count: int
    cutoff_time: str
    failed: tuple = ()  # response ids whose write raised

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processedCount": self.processed_count,
            "selectedCount": self.selected_count,
            "cutoffTime": self.cutoff_time,
            "failedCount": len(self.failed),
        }
