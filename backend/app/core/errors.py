from __future__ import annotations

from typing import Any, Optional


class SquareAPIError(Exception):
    """Raised when Square rejects a request or cannot be reached.

    ``errors`` is Square's structured ``errors`` array (possibly empty for
    transport failures, where ``status_code`` is None).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        errors: Optional[list[dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "SquareAPIError":
        errors = body.get("errors", []) if isinstance(body, dict) else []
        if errors:
            first = errors[0]
            message = first.get("detail") or first.get("code") or "Square API error"
        else:
            message = f"Square API returned HTTP {status_code}"
        return cls(message, status_code=status_code, errors=errors)


class ToolArgumentError(ValueError):
    """A tool call is missing a required field or carries an invalid value."""


class InvalidServiceError(ToolArgumentError):
    def __init__(self, invalid: list[str], valid: list[str]):
        super().__init__(
            f"Invalid service names: {', '.join(invalid)}. "
            f"Valid names are: {', '.join(valid)}"
        )
        self.invalid = invalid
        self.valid = valid


class InvalidPhoneNumberError(ToolArgumentError):
    pass


class BookingRecoveryError(Exception):
    """Add-services cancelled the original booking but could not recreate it.

    ``rolled_back`` tells whether the original appointment was restored by
    the compensating create; when False the calendar needs manual repair.
    """

    def __init__(
        self,
        message: str,
        *,
        booking_id: str,
        rolled_back: bool,
        restored_booking_id: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.booking_id = booking_id
        self.rolled_back = rolled_back
        self.restored_booking_id = restored_booking_id
        self.cause = cause
