"""
Couchbase Admin SDK - an async client for the Couchbase management API.

Provides the administrative subset needed to manage users:
- Bootstrapping and authenticating against a cluster
- Opening buckets (required before cluster-level calls on older servers)
- RBAC user upsert, removal and lookup
"""

from .connection.http import ClusterConnection, management_url
from .management import ClusterManager
from .types import AuthDomain, Bucket, ServerInfo, User, UserRole, UserSettings
from .exceptions import (
    CouchbaseError,
    ConnectionError,
    AuthenticationError,
    TimeoutError,
    BucketNotFoundError,
    ManagementError,
    UserNotFoundError,
)

__version__ = "0.1.0"
__all__ = [
    # Connection
    "ClusterConnection",
    "ClusterManager",
    "management_url",
    # Types
    "AuthDomain",
    "Bucket",
    "ServerInfo",
    "User",
    "UserRole",
    "UserSettings",
    # Exceptions
    "CouchbaseError",
    "ConnectionError",
    "AuthenticationError",
    "TimeoutError",
    "BucketNotFoundError",
    "ManagementError",
    "UserNotFoundError",
]
