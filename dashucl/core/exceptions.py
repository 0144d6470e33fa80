from __future__ import annotations

from typing import Any


class AppError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict | None = None) -> None:
        super().__init__(code="bad_request", message=message, status_code=400, details=details)


class ValidationAppError(AppError):
    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=422, details=details)


class ReminderSyncError(AppError):
    """Raised when the event list for rescheduling could not be fetched.

    Reminders cancelled before the fetch stay cancelled; the caller has to
    trigger a reschedule again once the timetable is reachable.
    """

    def __init__(self, message: str = "Failed to fetch timetable for reminders", details: dict | None = None) -> None:
        super().__init__(code="reminder_sync_failed", message=message, status_code=502, details=details)


class UpstreamError(AppError):
    def __init__(self, message: str = "UCL API request failed", details: dict | None = None) -> None:
        super().__init__(code="upstream_error", message=message, status_code=502, details=details)


class ProxyError(AppError):
    """Errors of the UCL proxy; rendered as ``{"ok": false, ...}`` rather than the API envelope."""

    def __init__(self, code: str, message: str, status_code: int, fields: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, message=message, status_code=status_code, details=fields)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": False, "error": self.message}
        payload.update({key: value for key, value in self.details.items() if value is not None})
        return payload


class ClientInputError(ProxyError):
    def __init__(self, message: str = "Missing token parameter") -> None:
        super().__init__(code="client_input_error", message=message, status_code=400)


class ServerConfigError(ProxyError):
    def __init__(self, message: str = "Server configuration error") -> None:
        super().__init__(code="server_config_error", message=message, status_code=500)


class UpstreamProtocolError(ProxyError):
    def __init__(
        self,
        message: str,
        *,
        details: str,
        endpoint: str,
        upstream_status: int,
        preview: str | None = None,
    ) -> None:
        super().__init__(
            code="upstream_protocol_error",
            message=message,
            status_code=502,
            fields={
                "details": details,
                "previewContent": preview,
                "endpoint": endpoint,
                "status": upstream_status,
            },
        )


class ProxyInternalError(ProxyError):
    def __init__(self, details: str, stack: str | None = None) -> None:
        super().__init__(
            code="proxy_internal_error",
            message="Internal server error in UCL API proxy",
            status_code=500,
            fields={"details": details, "stack": stack},
        )
