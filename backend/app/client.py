"""
Tiffin Response Engine - API Client

Python client for the provider response screens.

The server enforces every rule; the client re-applies the cheap ones before
spending a round trip:
- past dates are refused locally, without any network call
- timing is fetched fresh right before every mutation
- auto-confirm is refused locally for future dates and before cutoff

Mutating calls use a single timeout and are never retried. A timeout or
connectivity failure raises ResponseTransportError; the operator re-triggers.
"""
import os
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

import httpx

from .models.db_models import MealType, ResponseStatus, ResponseSource
from .models.timing import MealPreference, TimingInfo
from .services.responses.auto_confirm import AutoConfirmTrigger
from .services.responses.errors import (
    ResponseEngineError, PastDateError, CutoffPassedError, CutoffNotReachedError,
    FutureDateError, InvalidStatusError, InvalidCutoffTimeError, MealNotConfiguredError,
    InvalidPreferenceError, ResponseNotFoundError, CustomerNotFoundError, ResponseConflictError,
    ResponseTransportError,
)
from .services.responses.timing_resolver import local_now


RESPONSE_API_URL = os.getenv("RESPONSE_API_URL", "http://localhost:5000")
MUTATION_TIMEOUT_SECONDS = 10.0

# Server error codes -> client exceptions
ERRORS_BY_CODE = {
    error.code: error
    for error in (
        PastDateError, CutoffPassedError, CutoffNotReachedError, FutureDateError,
        InvalidStatusError, InvalidCutoffTimeError, MealNotConfiguredError,
        InvalidPreferenceError, ResponseNotFoundError, CustomerNotFoundError, ResponseConflictError,
    )
}


def error_from_payload(payload: Dict[str, Any], status_code: int) -> ResponseEngineError:
    """
    Build the matching exception for a server rejection.

    The server's cutoffTime is kept verbatim for display.
    """
    error_class = ERRORS_BY_CODE.get(payload.get("error"), ResponseEngineError)
    message = payload.get("message") or payload.get("detail")
    if not isinstance(message, str):
        message = None
    error = error_class(message, cutoff_time=payload.get("cutoffTime"))
    if error_class is ResponseEngineError:
        error.status_code = status_code
    return error


class MealResponseClient:
    """
    Client for one authenticated provider.

    `http` may be any httpx.Client (FastAPI's TestClient included); when
    omitted one is created against `base_url`. `clock` returns the current
    time in the service timezone.
    """

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = MUTATION_TIMEOUT_SECONDS,
        trigger: Optional[AutoConfirmTrigger] = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.token = token
        self.http = http or httpx.Client(base_url=base_url or RESPONSE_API_URL, timeout=timeout)
        self.timeout = timeout
        self.trigger = trigger or AutoConfirmTrigger()
        self.clock = clock

    def close(self):
        self.http.close()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.token}"}
        try:
            response = self.http.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise ResponseTransportError("Request timed out. Please try again.") from e
        except httpx.TransportError as e:
            raise ResponseTransportError() from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400 or payload.get("success") is False:
            raise error_from_payload(payload, response.status_code)
        return payload

    def _today(self) -> date:
        return self.clock().date()

    # =========================================================================
    # READS
    # =========================================================================

    def get_preferences(self) -> Dict[MealType, MealPreference]:
        payload = self._request("GET", "/api/Provider/preferences")
        meal_service = payload["data"]["mealService"]
        return {
            MealType(meal): MealPreference(
                meal_type=MealType(meal),
                enabled=bool(values.get("enabled")),
                price=float(values.get("price") or 0),
                cutoff_time=values.get("cutoffTime") or "",
            )
            for meal, values in meal_service.items()
        }

    def update_preferences(self, meal_service: Dict[MealType, Dict[str, Any]]) -> Dict[str, Any]:
        body = {MealType(meal).value: values for meal, values in meal_service.items()}
        payload = self._request("POST", "/api/Provider/preferences", json=body)
        return payload["data"]

    def get_daily_responses(self, menu_date: date, meal_type: MealType, status: Optional[str] = None) -> list:
        params = {"date": menu_date.isoformat(), "mealType": MealType(meal_type).value}
        if status is not None:
            params["status"] = ResponseStatus(status).value
        payload = self._request("GET", "/api/responses/daily", params=params)
        return payload["data"]["responses"]

    def get_daily_summary(self, menu_date: date, meal_type: MealType) -> Dict[str, int]:
        """{yes, no, pending, total} for one slot."""
        payload = self._request(
            "GET", "/api/responses/daily",
            params={"date": menu_date.isoformat(), "mealType": MealType(meal_type).value},
        )
        return payload["data"]["summary"]

    def get_timing_info(self) -> Dict[MealType, TimingInfo]:
        """Today's timing, fetched fresh on every call."""
        payload = self._request("GET", "/api/responses/timing")
        return {
            MealType(meal): TimingInfo.from_dict(info)
            for meal, info in payload["data"]["timing"].items()
        }

    def get_pending_count(self, menu_date: date, meal_type: MealType) -> int:
        payload = self._request(
            "GET", "/api/responses/pending",
            params={"date": menu_date.isoformat(), "mealType": MealType(meal_type).value},
        )
        return int(payload["data"]["pendingCount"])

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def set_status(
        self,
        customer_id: str,
        menu_date: date,
        meal_type: MealType,
        status: str,
        source: ResponseSource = ResponseSource.MANUAL,
    ) -> Dict[str, Any]:
        """
        Record a yes/no decision. Returns the updated response.

        Past dates fail before any request is made. For today the cutoff is
        checked against timing fetched just now.
        """
        meal_type = MealType(meal_type)
        today = self._today()
        if menu_date < today:
            raise PastDateError()

        if menu_date == today:
            timing = self.get_timing_info().get(meal_type)
            if timing is None:
                raise MealNotConfiguredError()
            if not timing.can_respond:
                raise CutoffPassedError(
                    timing.reason or f"Cutoff time {timing.cutoff_time} has passed",
                    cutoff_time=timing.cutoff_time,
                )

        payload = self._request(
            "POST", "/api/response",
            json={
                "customerId": customer_id,
                "menuDate": menu_date.isoformat(),
                "mealType": meal_type.value,
                "status": status,
                "source": ResponseSource(source).value,
            },
            timeout=self.timeout,
        )
        return payload["data"]

    def auto_confirm_pending(self, menu_date: date, meal_type: MealType) -> Dict[str, Any]:
        """
        Confirm every pending response of a slot as YES.

        Returns {processedCount, selectedCount, cutoffTime, failedCount}.
        """
        meal_type = MealType(meal_type)
        today = self._today()
        if menu_date > today:
            raise FutureDateError()

        if menu_date == today:
            timing = self.get_timing_info().get(meal_type)
            if timing is not None and timing.can_respond:
                raise CutoffNotReachedError(
                    f"Auto-confirmation will only work after the cutoff time ({timing.cutoff_time})",
                    cutoff_time=timing.cutoff_time,
                )

        payload = self._request(
            "POST", "/api/responses/auto-confirm-pending",
            json={"date": menu_date.isoformat(), "mealType": meal_type.value},
            timeout=self.timeout,
        )
        return payload["data"]

    def maybe_suggest_auto_confirm(self, menu_date: date, meal_type: MealType) -> bool:
        """Ask the trigger policy whether to prompt the operator now."""
        meal_type = MealType(meal_type)
        today = self._today()
        pending_count = self.get_pending_count(menu_date, meal_type)
        timing = self.get_timing_info().get(meal_type) if menu_date == today else None
        return self.trigger.should_suggest(menu_date, meal_type, pending_count, timing, today)
