"""Exceptions for django-inbox."""


class InboxError(Exception):
    """Base exception for inbox errors."""

    code = "INBOX_ERROR"


class NotAuthorizedError(InboxError):
    """Identity is missing or lacks access to the conversation or channel."""

    code = "ACCESS_DENIED"

    def __init__(self, action: str = "access this resource"):
        self.action = action
        super().__init__(f"Not authorized to {action}")


class NotFoundError(InboxError):
    """Referenced record does not exist or does not belong to the caller."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier=None):
        self.resource = resource
        self.identifier = identifier
        if identifier is None:
            super().__init__(f"{resource} not found")
        else:
            super().__init__(f"{resource} {identifier} not found")


class ValidationFailedError(InboxError):
    """Malformed input, with field-level detail."""

    code = "VALIDATION_FAILED"

    def __init__(self, fields: dict, message: str = "Invalid input"):
        self.fields = fields
        super().__init__(message)


class StoreError(InboxError):
    """The durable write failed. Nothing was published."""

    code = "STORE_ERROR"

    def __init__(self, operation: str, original_error: Exception = None):
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Failed to {operation}")


class BroadcastError(InboxError):
    """Publishing to the transport failed after the record was saved."""

    code = "BROADCAST_ERROR"

    def __init__(self, channel: str, reason: str, original_error: Exception = None):
        self.channel = channel
        self.original_error = original_error
        super().__init__(f"[{channel}] {reason}")
