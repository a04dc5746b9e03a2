"""
Credential lifecycle for Couchbase.

``CouchbaseDatabase`` implements the host contract by composing a
``ConnectionProducer`` (configuration and the administrative connection), a
``CredentialGenerator`` and a ``StatementParser``. Every operation that reads
configuration or touches the connection runs inside one lease of the
producer's lock, network round-trips included, so credential operations on an
instance never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Mapping, Sequence, TypeVar

import couchbase_admin
from couchbase_admin import UserSettings

from .connection_config import PluginConfig
from .connection_manager import ConnectionLease, ConnectionProducer
from .constants import AUTH_DOMAIN, PLUGIN_TYPE_NAME
from .credentials import CredentialGenerator
from .exceptions import (
    ConnectionError,
    DeadlineExceededError,
    EmptyStatementError,
    PluginError,
    RevokeError,
    UnsupportedOperationError,
    UpsertError,
)
from .statements import StatementParser
from .types import StaticUserConfig, Statements, UsernameConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CouchbaseDatabase:
    """
    Issues, rotates and revokes Couchbase users for a secrets host.

    Example::

        db = CouchbaseDatabase()
        await db.init({
            "connection_string": "couchbase://localhost",
            "username": "Administrator",
            "password": "password",
            "bucket": "default",
        }, verify_connection=True)

        username, password = await db.create_user(
            Statements(creation=['{"roles": [{"role": "ro_admin"}]}']),
            UsernameConfig(display_name="token", role_name="readonly"),
        )
        await db.revoke_user(Statements(), username)

    Every stateful operation accepts ``timeout``: a deadline in seconds for the
    whole call, waiting for the lock included. ``None`` waits as long as the
    connection timeouts allow.
    """

    def __init__(
        self,
        producer: ConnectionProducer | None = None,
        credentials: CredentialGenerator | None = None,
        parser: StatementParser | None = None,
    ):
        self._producer = producer or ConnectionProducer()
        self._credentials = credentials or CredentialGenerator()
        self._parser = parser or StatementParser()

    @property
    def config(self) -> PluginConfig:
        return self._producer.config

    @property
    def initialized(self) -> bool:
        return self._producer.initialized

    def type(self) -> str:
        return PLUGIN_TYPE_NAME

    def secret_values(self) -> dict[str, str]:
        return self._producer.secret_values()

    async def init(
        self,
        conf: Mapping[str, Any],
        verify_connection: bool = False,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Validate and store the configuration, optionally verifying it.

        Returns:
            The configuration mapping the host should persist
        """
        return await _run("init", self._producer.init(conf, verify_connection), timeout)

    async def initialize(
        self,
        conf: Mapping[str, Any],
        verify_connection: bool = False,
        timeout: float | None = None,
    ) -> None:
        await self.init(conf, verify_connection, timeout)

    async def create_user(
        self,
        statements: Statements,
        username_config: UsernameConfig,
        expiration: datetime | None = None,
        timeout: float | None = None,
    ) -> tuple[str, str]:
        """
        Generate a credential and create a user holding the statement's roles.

        ``expiration`` is accepted for the host contract only; Couchbase users
        do not expire, the host revokes them.

        Returns:
            The generated ``(username, password)``

        Raises:
            EmptyStatementError: If no creation statement is given
            StatementParseError: If the creation statement is malformed
            NoRoleError: If the creation statement lists no roles
            NotInitializedError, ConnectionError: If the cluster is unavailable
            UpsertError: If the cluster rejects the user
        """
        return await _run("create_user", self._create_user(statements, username_config), timeout)

    async def set_credentials(
        self,
        statements: Statements,
        static_config: StaticUserConfig,
        timeout: float | None = None,
    ) -> tuple[str, str]:
        """
        Create the given user, or replace its password and roles.

        Returns:
            The supplied ``(username, password)``
        """
        return await _run(
            "set_credentials",
            self._set_credentials(statements, static_config.username, static_config.password),
            timeout,
        )

    async def renew_user(
        self,
        statements: Statements,
        username: str,
        expiration: datetime | None = None,
    ) -> None:
        # Couchbase users have no lease to extend.
        return None

    async def revoke_user(
        self,
        statements: Statements,
        username: str,
        timeout: float | None = None,
    ) -> None:
        """
        Delete a user from the local domain.

        Raises:
            RevokeError: If the cluster rejects the removal, including when the
                user does not exist
        """
        await _run("revoke_user", self._revoke_user(username), timeout)

    async def rotate_root_credentials(self, statements: Sequence[str]) -> dict[str, Any]:
        raise UnsupportedOperationError(
            "root credential rotation is not currently implemented in couchbase",
            operation="rotate_root_credentials",
        )

    async def close(self, timeout: float | None = None) -> None:
        """Close the administrative connection, if one is open."""
        await _run("close", self._producer.close(), timeout)

    async def _create_user(self, statements: Statements, username_config: UsernameConfig) -> tuple[str, str]:
        async with self._producer.lease() as lease:
            creation = _creation_statement(statements)
            await lease.connection()

            username = self._credentials.generate_username(username_config)
            password = self._credentials.generate_password()

            await self._upsert_user(lease, creation, username, password)
            logger.info(f"Created user {username}")
            return username, password

    async def _set_credentials(self, statements: Statements, username: str, password: str) -> tuple[str, str]:
        async with self._producer.lease() as lease:
            creation = _creation_statement(statements)
            await lease.connection()

            await self._upsert_user(lease, creation, username, password)
            logger.info(f"Set credentials for user {username}")
            return username, password

    async def _revoke_user(self, username: str) -> None:
        async with self._producer.lease() as lease:
            await lease.connection()
            try:
                await lease.cluster_manager.remove_user(AUTH_DOMAIN, username)
            except couchbase_admin.CouchbaseError as e:
                if isinstance(e, couchbase_admin.ConnectionError):
                    await _drop_connection(lease)
                logger.error(f"Removing user {username} failed: {e.message}")
                raise RevokeError(f"error when revoking user {username}: {e.message}", username=username) from e
            logger.info(f"Revoked user {username}")

    async def _upsert_user(self, lease: ConnectionLease, statement: str, username: str, password: str) -> None:
        # Roles are validated before anything is sent to the cluster.
        role_statement = self._parser.parse(statement)
        settings = UserSettings(name=username, password=password, roles=role_statement.to_user_roles())
        try:
            await lease.cluster_manager.upsert_user(AUTH_DOMAIN, username, settings)
        except couchbase_admin.CouchbaseError as e:
            if isinstance(e, couchbase_admin.ConnectionError):
                await _drop_connection(lease)
            logger.error(f"Upserting user {username} failed: {e.message}")
            raise UpsertError(f"error when upserting user: {e.message}") from e


def _creation_statement(statements: Statements) -> str:
    creation = statements.with_compatibility().creation
    if not creation:
        raise EmptyStatementError()
    return creation[0]


async def _drop_connection(lease: ConnectionLease) -> None:
    """Forget a connection that failed in transit so the next call reconnects."""
    try:
        await lease.reset()
    except ConnectionError as e:
        logger.warning(f"Discarding broken connection failed: {e.message}")


async def _run(operation: str, call: Awaitable[T], timeout: float | None) -> T:
    """Await ``call`` within ``timeout`` and label any plugin error with ``operation``."""
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as e:
        raise DeadlineExceededError(f"did not finish within {timeout}s", operation=operation) from e
    except PluginError as e:
        if e.operation is None:
            e.operation = operation
        raise


__all__ = ["CouchbaseDatabase"]
