"""
Meal Response Services

Response lifecycle and cutoff-based auto-confirmation.

- TimingResolver: is today's cutoff still ahead?
- ResponseMutator: one explicit yes/no with past-date and cutoff guards
- AutoConfirmEngine: pending -> yes batch after cutoff, conditional per record
- ResponseQueryService: daily list, pending count, timing snapshot
- ResponseService / AutoConfirmSweep: orchestration and logging
"""

from .timing_resolver import TimingResolver, parse_cutoff_time, local_now
from .state_machine import ResponseStateMachine, TRANSITIONS
from .preference_store import PreferenceStore
from .response_store import ResponseStore
from .response_mutator import ResponseMutator
from .auto_confirm import AutoConfirmEngine, AutoConfirmTrigger, TriggerPolicy, SuggestionSession
from .queries import ResponseQueryService, serialize_response, serialize_timing
from .response_service import ResponseService, AutoConfirmSweep
from .errors import (
    ResponseEngineError, PastDateError, CutoffPassedError, CutoffNotReachedError,
    FutureDateError, InvalidStatusError, InvalidCutoffTimeError, MealNotConfiguredError,
    InvalidPreferenceError, ResponseNotFoundError, CustomerNotFoundError, ResponseConflictError,
    ResponseTransportError,
)

__all__ = [
    'TimingResolver',
    'parse_cutoff_time',
    'local_now',
    'ResponseStateMachine',
    'TRANSITIONS',
    'PreferenceStore',
    'ResponseStore',
    'ResponseMutator',
    'AutoConfirmEngine',
    'AutoConfirmTrigger',
    'TriggerPolicy',
    'SuggestionSession',
    'ResponseQueryService',
    'serialize_response',
    'serialize_timing',
    'ResponseService',
    'AutoConfirmSweep',
    # Errors
    'ResponseEngineError',
    'PastDateError',
    'CutoffPassedError',
    'CutoffNotReachedError',
    'FutureDateError',
    'InvalidStatusError',
    'InvalidCutoffTimeError',
    'MealNotConfiguredError',
    'InvalidPreferenceError',
    'ResponseNotFoundError',
    'CustomerNotFoundError',
    'ResponseConflictError',
    'ResponseTransportError',
]
