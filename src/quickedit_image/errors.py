class QuickeditError(RuntimeError):
    """Base class for errors raised by the in-place editor."""


class InvalidTransitionError(QuickeditError):
    """Raised when a field is asked to move to a state it cannot reach from its current one."""


class ReentrantTransitionError(QuickeditError):
    """Raised when a state change is requested while listeners of another change are still running."""


class UnknownEditorError(QuickeditError):
    """Raised when no editor is registered for a field type."""


class UnknownFieldError(QuickeditError):
    """Raised when a session is asked about a field it never attached."""


class TransportError(QuickeditError):
    """Raised when a backend request fails without a usable JSON answer."""
