"""Tiffin Response Engine - Data Models"""
from .db_models import (
    # Enums
    MealType, ResponseStatus, ResponseSource,
    # ORM
    ProviderDB, MealPreferenceDB, CustomerDB, MealResponseDB, ResponseTransitionLogDB,
)
from .timing import MealPreference, TimingInfo, AutoConfirmResult, DEFAULT_CUTOFFS

__all__ = [
    "MealType", "ResponseStatus", "ResponseSource",
    "ProviderDB", "MealPreferenceDB", "CustomerDB", "MealResponseDB", "ResponseTransitionLogDB",
    "MealPreference", "TimingInfo", "AutoConfirmResult", "DEFAULT_CUTOFFS",
]
