"""
Response Engine Errors

Every rejection the engine can produce. Each error carries a stable `code`,
the HTTP status the API answers with, and, where relevant, the cutoff time the
caller must show to the operator verbatim.
"""
from typing import Any, Dict, Optional


class ResponseEngineError(Exception):
    """Base class for all structured response-engine rejections."""

    code = "response_engine_error"
    status_code = 400
    default_message = "Response could not be processed"

    def __init__(self, message: Optional[str] = None, cutoff_time: Optional[str] = None):
        self.message = message or self.default_message
        self.cutoff_time = cutoff_time
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "success": False,
            "error": self.code,
            "message": self.message,
        }
        if self.cutoff_time:
            payload["cutoffTime"] = self.cutoff_time
        return payload


# =============================================================================
# VALIDATION ERRORS (local, recoverable)
# =============================================================================

class PastDateError(ResponseEngineError):
    code = "past_date"
    default_message = "Cannot modify responses for past dates"


class CutoffPassedError(ResponseEngineError):
    code = "cutoff_passed"
    status_code = 403
    default_message = "Cutoff time has passed"


class CutoffNotReachedError(ResponseEngineError):
    code = "cutoff_not_reached"
    default_message = "Cutoff not reached, no action taken"


class FutureDateError(ResponseEngineError):
    code = "future_date"
    default_message = "Auto-confirmation is only available for today or past dates"


class InvalidStatusError(ResponseEngineError):
    code = "invalid_status"
    default_message = "Status must be 'yes' or 'no'"


class InvalidCutoffTimeError(ResponseEngineError):
    code = "invalid_cutoff_time"
    default_message = "Cutoff time must look like '10:30 AM'"


class MealNotConfiguredError(ResponseEngineError):
    code = "meal_not_configured"
    default_message = "No cutoff time is configured for this meal"


class InvalidPreferenceError(ResponseEngineError):
    code = "invalid_preference"
    default_message = "Invalid meal preferences"


# =============================================================================
# LOOKUP ERRORS
# =============================================================================

class ResponseNotFoundError(ResponseEngineError):
    code = "response_not_found"
    status_code = 404
    default_message = "No response exists for this customer, date and meal"


class ResponseConflictError(ResponseEngineError):
    code = "response_conflict"
    status_code = 409
    default_message = "Response changed while saving. Please try again."


class CustomerNotFoundError(ResponseEngineError):
    code = "customer_not_found"
    status_code = 404
    default_message = "Customer not found"


# =============================================================================
# TRANSPORT ERRORS (client side only)
# =============================================================================

class ResponseTransportError(ResponseEngineError):
    """Timeout or connectivity failure. Never retried; the operator re-triggers."""
    code = "transport_error"
    status_code = 503
    default_message = "Network error. Please try again."
