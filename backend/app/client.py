"""HTTP client for the Plindo booking API."""

from __future__ import annotations

from datetime import date
import logging
from typing import Any

import httpx

from .core.constants import ACTOR_ID_HEADER, ACTOR_ROLE_HEADER, REQUEST_ID_HEADER
from .core.enums import ErrorCode, ServiceCategory, SlotBookingStatus
from .core.ulid_helper import generate_ulid

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised when the API answers with a non-zero envelope status."""

    def __init__(
        self,
        status: int,
        message: str,
        http_status: int | None = None,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.http_status = http_status
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class CapacityExceededError(ApiError):
    """The requested window filled up; refresh availability and pick another."""


class ApiConnectionError(ApiError):
    """Raised when the API cannot be reached."""


class ApiClient:
    """Envelope-aware client; every call returns the envelope's ``data``."""

    def __init__(
        self,
        base_url: str,
        *,
        actor_role: str | None = None,
        actor_id: str | None = None,
        http: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.actor_role = actor_role
        self.actor_id = actor_id
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _headers(self, extra: dict[str, str] | None) -> dict[str, str]:
        headers = {REQUEST_ID_HEADER: generate_ulid()}
        if self.actor_role:
            headers[ACTOR_ROLE_HEADER] = self.actor_role
        if self.actor_id:
            headers[ACTOR_ID_HEADER] = self.actor_id
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = self.http.request(
                method, url, params=params, json=data, headers=self._headers(headers)
            )
        except httpx.TimeoutException as exc:
            raise ApiConnectionError(
                int(ErrorCode.ERROR), f"Request to {url} timed out"
            ) from exc
        except httpx.HTTPError as exc:
            raise ApiConnectionError(int(ErrorCode.ERROR), f"Connection failed: {exc}") from exc

        return self._unwrap(response)

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            raise ApiError(
                int(ErrorCode.ERROR),
                f"Unexpected response ({response.status_code})",
                response.status_code,
            ) from None

        if not isinstance(body, dict) or "status" not in body:
            raise ApiError(
                int(ErrorCode.ERROR),
                f"Malformed envelope ({response.status_code})",
                response.status_code,
            )

        status = body.get("status")
        if status == ErrorCode.SUCCESS and response.status_code < 400:
            return body.get("data")

        number = status if isinstance(status, int) and status != 0 else int(ErrorCode.ERROR)
        error_cls = CapacityExceededError if number == ErrorCode.CAPACITY_EXCEEDED else ApiError
        logger.debug(
            "API call failed",
            extra={"status": number, "http_status": response.status_code, "code": body.get("code")},
        )
        raise error_cls(
            number,
            str(body.get("message") or ""),
            response.status_code,
            code=body.get("code"),
            details=body.get("details"),
        )

    def get(self, url: str, params: dict[str, Any] | None = None, data: Any = None,
            headers: dict[str, str] | None = None) -> Any:
        return self.request("GET", url, params=params, data=data, headers=headers)

    def post(self, url: str, params: dict[str, Any] | None = None, data: Any = None,
             headers: dict[str, str] | None = None) -> Any:
        return self.request("POST", url, params=params, data=data, headers=headers)

    def put(self, url: str, params: dict[str, Any] | None = None, data: Any = None,
            headers: dict[str, str] | None = None) -> Any:
        return self.request("PUT", url, params=params, data=data, headers=headers)

    def patch(self, url: str, params: dict[str, Any] | None = None, data: Any = None,
              headers: dict[str, str] | None = None) -> Any:
        return self.request("PATCH", url, params=params, data=data, headers=headers)

    def delete(self, url: str, params: dict[str, Any] | None = None, data: Any = None,
               headers: dict[str, str] | None = None) -> Any:
        return self.request("DELETE", url, params=params, data=data, headers=headers)


class SlotBookingApi:
    """Slot booking calls on top of ApiClient."""

    def __init__(self, client: ApiClient, prefix: str = "/api") -> None:
        self.client = client
        self.prefix = prefix.rstrip("/")

    def available_slots(
        self,
        partner_id: str,
        slot_date: date,
        service_category: ServiceCategory | str | None = None,
        duration: int | None = None,
    ) -> dict[str, Any]:
        return self.client.get(
            f"{self.prefix}/bookings/slots",
            params={
                "partnerId": partner_id,
                "date": slot_date.isoformat(),
                "serviceCategory": _value(service_category),
                "duration": duration,
            },
        )

    def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.client.post(f"{self.prefix}/bookings/slot", data=payload)

    def get(self, booking_id: str) -> dict[str, Any]:
        return self.client.get(f"{self.prefix}/bookings/slot/{booking_id}")

    def update_status(
        self, booking_id: str, status: SlotBookingStatus | str, note: str | None = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"status": _value(status)}
        if note:
            body["note"] = note
        return self.client.patch(f"{self.prefix}/bookings/{booking_id}/status", data=body)

    def cancel(self, booking_id: str, reason: str | None = None) -> dict[str, Any]:
        return self.client.post(
            f"{self.prefix}/bookings/{booking_id}/cancel",
            data={"reason": reason} if reason else None,
        )

    def reschedule(
        self, booking_id: str, slot_date: date, start_time: str, reason: str | None = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"date": slot_date.isoformat(), "startTime": start_time}
        if reason:
            body["reason"] = reason
        return self.client.post(f"{self.prefix}/bookings/{booking_id}/reschedule", data=body)


def _value(item: Any) -> Any:
    return getattr(item, "value", item)
