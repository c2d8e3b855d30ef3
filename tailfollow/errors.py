class TailError(Exception):
    """Base class for follower errors."""


class NotFoundError(TailError, FileNotFoundError):
    """The followed path does not exist."""


class SubscriptionError(TailError):
    """The change-notification source could not attach to the path."""


class ReopenError(TailError):
    """Re-opening after a rotation failed within the startup timeout."""


class FollowerClosed(TailError):
    """The follower was closed and has no more lines to give."""
