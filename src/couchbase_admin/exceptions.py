"""
Couchbase Admin SDK Exceptions.

Custom exception hierarchy for the management client.
"""


class CouchbaseError(Exception):
    """Base exception for all Couchbase admin SDK errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ConnectionError(CouchbaseError):
    """Raised when the management endpoint cannot be reached."""

    pass


class AuthenticationError(CouchbaseError):
    """Raised when the cluster rejects the supplied credentials."""

    pass


class TimeoutError(ConnectionError):
    """Raised when connecting to the cluster takes longer than allowed."""

    pass


class BucketNotFoundError(CouchbaseError):
    """Raised when a bucket cannot be opened because it does not exist."""

    def __init__(self, message: str, bucket: str | None = None, code: int | None = None):
        self.bucket = bucket
        super().__init__(message, code)


class ManagementError(CouchbaseError):
    """Raised when a management (REST) call is rejected by the cluster."""

    def __init__(self, message: str, path: str | None = None, code: int | None = None):
        self.path = path
        super().__init__(message, code)


class UserNotFoundError(ManagementError):
    """Raised when a user does not exist in the requested domain."""

    pass
