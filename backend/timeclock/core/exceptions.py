"""Kiosk error taxonomy.

Backend errors are raised by the HTTP client and turned into inline
messages by the kiosk session. State errors are raised by the session when
the display asks for a transition the current step does not allow.
"""

from typing import Optional


class KioskError(Exception):
    """Base class for every kiosk error."""


class BackendError(KioskError):
    """A backend call did not succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TransportError(BackendError):
    """The backend could not be reached (connect error, timeout)."""


class StoreNotFoundError(BackendError):
    """No tenant matches the entered store code."""


class PinRejectedError(BackendError):
    """The PIN was not accepted. Wrong and unknown PINs are indistinguishable."""


class RateLimitedError(BackendError):
    """The backend refused the PIN attempt with 429."""


class ActionFailedError(BackendError):
    """A clock-in/out or break request was rejected."""


class HoursUnavailableError(BackendError):
    """The pay-period hours could not be loaded."""


class EditRequestFailedError(BackendError):
    """The correction request was not accepted."""


class KioskStateError(KioskError):
    """Raised when an operation is not allowed on the current step."""

    def __init__(self, operation: str, step: str):
        self.operation = operation
        self.step = step
        super().__init__(f"'{operation}' is not allowed on step '{step}'")


class KioskBusyError(KioskError):
    """Raised when a backend request is already in flight."""


class EntryNotFoundError(KioskError):
    """Raised when an hours entry id is not in the loaded pay period."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Hours entry '{entry_id}' not found")


class EntryNotEditableError(KioskError):
    """Raised for entries that are still open or already have a pending edit."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Hours entry '{entry_id}' cannot be corrected")
