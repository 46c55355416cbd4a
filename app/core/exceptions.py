"""Custom exceptions raised by the persistence layer.

These exceptions provide structured error handling that:
- Separates internal details from user-facing messages
- Enables proper error propagation for monitoring
- Maintains security by not leaking implementation details

Services translate them into tagged ``Err`` results (see ``app.core.result``).
"""


class InboxError(Exception):
    """Base exception for inbox-related errors."""

    def __init__(self, message: str, user_message: str | None = None):
        """
        Initialize inbox error.

        Args:
            message: Internal error message for logging/debugging
            user_message: Safe message to show to users (defaults to generic message)
        """
        super().__init__(message)
        self.user_message = user_message or "An error occurred while processing your request."


class DuplicateKeyError(InboxError):
    """A username or email is already taken."""

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(
            message,
            user_message or "Username or email is already taken.",
        )


class StoreUnavailableError(InboxError):
    """Transient failure talking to the database."""

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(
            message,
            user_message or "The service is temporarily unavailable. Please try again.",
        )


class MailDeliveryError(InboxError):
    """Verification mail could not be handed to the SMTP server."""

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(
            message,
            user_message or "Unable to send the verification email.",
        )


class MissingReferenceError(InboxError):
    """A row refers to a user that no longer exists."""

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(
            message,
            user_message or "User not found.",
        )
