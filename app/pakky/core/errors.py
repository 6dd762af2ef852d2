"""Exception hierarchy for the pakky engine.

Per-item and per-step failures are recorded in results rather than
raised; these exceptions cover what callers must handle.
"""


class PakkyError(Exception):
    """Base exception for pakky engine errors."""


class ValidationError(PakkyError):
    """Raised when user-supplied input or a command template is malformed."""


class NotAllowedError(PakkyError):
    """Raised when an operation, channel or command is outside the allow-list."""


class SessionActiveError(NotAllowedError):
    """Raised when an operation conflicts with a running install session."""


class ItemBusyError(NotAllowedError):
    """Raised when removing a queue item that is currently installing."""


class ExternalFailureError(PakkyError):
    """Raised when an external command or query fails and must be surfaced."""


class CancelledError(PakkyError):
    """Raised when cooperative cancellation is observed."""
