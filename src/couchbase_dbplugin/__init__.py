"""
Couchbase database plugin for a dynamic secrets host.

Issues, rotates and revokes Couchbase users on behalf of callers without
handing out the cluster's administrative credentials.

Usage:
    db = couchbase_dbplugin.new()
    await db.init(config, verify_connection=True)
    username, password = await db.create_user(statements, username_config)
"""

from .connection_config import PluginConfig
from .connection_manager import ConnectionLease, ConnectionProducer
from .credentials import CredentialGenerator
from .database import CouchbaseDatabase
from .middleware import ErrorSanitizerMiddleware, RedactingFilter
from .statements import Role, RoleStatement, StatementParser
from .types import Database, StaticUserConfig, Statements, UsernameConfig
from .exceptions import (
    PluginError,
    ConfigValidationError,
    NotInitializedError,
    ConnectionError,
    DeadlineExceededError,
    StatementError,
    StatementParseError,
    EmptyStatementError,
    NoRoleError,
    UpsertError,
    RevokeError,
    UnsupportedOperationError,
)


def new() -> ErrorSanitizerMiddleware:
    """Create the host-facing plugin instance, wrapped for secret scrubbing."""
    db = CouchbaseDatabase()
    return ErrorSanitizerMiddleware(db, db.secret_values)


__version__ = "0.1.0"
__all__ = [
    "new",
    # Lifecycle
    "CouchbaseDatabase",
    "ErrorSanitizerMiddleware",
    "RedactingFilter",
    # Components
    "ConnectionProducer",
    "ConnectionLease",
    "CredentialGenerator",
    "StatementParser",
    "PluginConfig",
    # Types
    "Database",
    "Role",
    "RoleStatement",
    "Statements",
    "StaticUserConfig",
    "UsernameConfig",
    # Exceptions
    "PluginError",
    "ConfigValidationError",
    "NotInitializedError",
    "ConnectionError",
    "DeadlineExceededError",
    "StatementError",
    "StatementParseError",
    "EmptyStatementError",
    "NoRoleError",
    "UpsertError",
    "RevokeError",
    "UnsupportedOperationError",
]
