"""
Exceptions raised by the Couchbase database plugin.

Every error carries the name of the host operation that failed so callers can
report it without inspecting the chained cause.
"""


class PluginError(Exception):
    """Base exception for all plugin errors."""

    def __init__(self, message: str, operation: str | None = None):
        self.message = message
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ConfigValidationError(PluginError):
    """Raised when a required configuration field is missing or malformed."""

    pass


class NotInitializedError(PluginError):
    """Raised when an operation runs before a successful init."""

    def __init__(self, message: str = "connection has not been initialized", operation: str | None = None):
        super().__init__(message, operation)


class ConnectionError(PluginError):
    """Raised when connecting, authenticating or opening the bucket fails."""

    pass


class DeadlineExceededError(PluginError):
    """Raised when an operation does not finish within the caller's deadline."""

    pass


class StatementError(PluginError):
    """Base class for unusable creation statements."""

    pass


class StatementParseError(StatementError):
    """Raised when a creation statement is not valid JSON of the expected shape."""

    pass


class EmptyStatementError(StatementError):
    """Raised when no creation statement was supplied."""

    def __init__(self, message: str = "empty creation statements", operation: str | None = None):
        super().__init__(message, operation)


class NoRoleError(StatementError):
    """Raised when a creation statement decodes but lists no roles."""

    def __init__(
        self,
        message: str = "at least one role should be given in creation statement",
        operation: str | None = None,
    ):
        super().__init__(message, operation)


class UpsertError(PluginError):
    """Raised when the cluster rejects a user upsert."""

    pass


class RevokeError(PluginError):
    """Raised when the cluster rejects a user removal."""

    def __init__(self, message: str, username: str | None = None, operation: str | None = None):
        self.username = username
        super().__init__(message, operation)


class UnsupportedOperationError(PluginError):
    """Raised for host operations this plugin deliberately does not implement."""

    pass
