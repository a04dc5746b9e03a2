"""
Administrative connection management.

``ConnectionProducer`` owns the plugin configuration and the single
administrative connection to the cluster. Both are guarded by one lock: the
connection can only be reached through a ``ConnectionLease``, and a lease only
exists while the lock is held.

Example::

    producer = ConnectionProducer()
    await producer.init({"connection_string": "couchbase://localhost", ...})

    async with producer.lease() as lease:
        await lease.connection()
        await lease.cluster_manager.upsert_user(...)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Callable, Mapping

import httpx

import couchbase_admin
from couchbase_admin import ClusterConnection, ClusterManager

from .connection_config import PluginConfig
from .constants import CONNECT_TIMEOUT, REDACTED_PASSWORD, SERVER_CONNECT_TIMEOUT
from .exceptions import ConnectionError, NotInitializedError

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[str], ClusterConnection]


class ConnectionProducer:
    """
    Lazily-established administrative connection plus its configuration.

    At most one connection is alive at any time. It is created on the first
    ``lease.connection()`` after init, reused until ``close()`` or a reset,
    and never pooled.
    """

    def __init__(self, connection_factory: ConnectionFactory | None = None):
        """
        Args:
            connection_factory: Builds a ``ClusterConnection`` from a connection
                string. Defaults to one using the fixed bootstrap timeouts.
        """
        self._connection_factory = connection_factory or _default_connection
        self._lock = asyncio.Lock()
        self.raw_config: dict[str, Any] = {}
        self.config = PluginConfig()
        self.initialized = False
        self._cluster: ClusterConnection | None = None
        self._cluster_manager: ClusterManager | None = None

    @property
    def has_connection(self) -> bool:
        """Check whether a connection is currently cached."""
        return self._cluster is not None

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[ConnectionLease]:
        """
        Hold the lock for the duration of the block.

        Yields:
            A lease giving access to the connection; unusable after the block
        """
        async with self._lock:
            lease = ConnectionLease(self)
            try:
                yield lease
            finally:
                lease._release()

    async def init(self, conf: Mapping[str, Any], verify_connection: bool = False) -> dict[str, Any]:
        """
        Replace the configuration.

        Args:
            conf: Host configuration mapping
            verify_connection: Connect immediately and fail if that does not work

        Returns:
            The configuration mapping as given

        Raises:
            ConfigValidationError: If a required field is empty or malformed
            ConnectionError: If ``verify_connection`` is set and connecting fails
        """
        async with self.lease() as lease:
            config = PluginConfig.from_mapping(conf)
            config.validate_required()

            # A new configuration invalidates a connection built from the old one.
            await lease.reset()
            self.raw_config = dict(conf)
            self.config = config
            self.initialized = True
            logger.info(f"Initialized connection configuration for {config.connection_string}")
            if not config.bucket:
                logger.warning(
                    "No bucket configured; servers before 6.5 reject user management until a bucket is open"
                )

            if verify_connection:
                try:
                    await lease.connection()
                except ConnectionError as e:
                    raise ConnectionError(f"error verifying connection: {e.message}", operation="init") from e

        return dict(conf)

    async def initialize(self, conf: Mapping[str, Any], verify_connection: bool = False) -> None:
        """Same as :meth:`init`, discarding the returned configuration."""
        await self.init(conf, verify_connection)

    async def close(self) -> None:
        """
        Close the cached connection, if any. Idempotent.

        Raises:
            ConnectionError: If closing the underlying client fails
        """
        async with self.lease() as lease:
            await lease.reset()

    def secret_values(self) -> dict[str, str]:
        """Map of secret values to the placeholder that replaces them."""
        if not self.config.password:
            return {}
        return {self.config.password: REDACTED_PASSWORD}

    async def _connect(self) -> ClusterConnection:
        if not self.initialized:
            raise NotInitializedError()
        if self._cluster is not None:
            return self._cluster

        config = self.config
        try:
            cluster = self._connection_factory(config.connection_string)
        except ValueError as e:
            raise ConnectionError(f"invalid connection_string: {e}") from e
        try:
            await cluster.connect()
            await cluster.authenticate(config.username, config.password)
            # Servers before 6.5 reject cluster-level calls until a bucket is open.
            if config.bucket:
                try:
                    await cluster.open_bucket(config.bucket)
                except couchbase_admin.CouchbaseError as e:
                    raise ConnectionError(f"could not open bucket {config.bucket}: {e.message}") from e
            cluster_manager = cluster.manager(config.username, config.password)
        except couchbase_admin.CouchbaseError as e:
            await cluster.close()
            logger.error(f"Connection to {cluster.url} failed: {e.message}")
            raise ConnectionError(e.message) from e
        except BaseException:
            await cluster.close()
            raise

        self._cluster = cluster
        self._cluster_manager = cluster_manager
        logger.info(f"Connected to {cluster.url} as {config.username}")
        return cluster

    async def _reset(self) -> None:
        cluster = self._cluster
        self._cluster = None
        self._cluster_manager = None
        if cluster is None:
            return
        try:
            await cluster.close()
        except (couchbase_admin.CouchbaseError, httpx.HTTPError) as e:
            raise ConnectionError(f"error closing connection: {e}") from e
        logger.info(f"Closed connection to {cluster.url}")


class ConnectionLease:
    """
    Proof that the producer's lock is held.

    Obtained only from :meth:`ConnectionProducer.lease`; every method raises
    ``RuntimeError`` once the lease's block has exited.
    """

    def __init__(self, producer: ConnectionProducer):
        self._producer: ConnectionProducer | None = producer

    @property
    def producer(self) -> ConnectionProducer:
        if self._producer is None:
            raise RuntimeError("Connection lease used after its lock was released")
        return self._producer

    @property
    def cluster_manager(self) -> ClusterManager:
        """
        Management handle of the current connection.

        Raises:
            ConnectionError: If no connection has been established
        """
        manager = self.producer._cluster_manager
        if manager is None:
            raise ConnectionError("no connection established")
        return manager

    async def connection(self) -> ClusterConnection:
        """
        Return the cached connection, establishing it if needed.

        Raises:
            NotInitializedError: If the producer has not been initialized
            ConnectionError: If connecting, authenticating or opening the bucket
                fails; nothing is cached in that case
        """
        return await self.producer._connect()

    async def reset(self) -> None:
        """Close and forget the cached connection."""
        await self.producer._reset()

    def _release(self) -> None:
        self._producer = None


def _default_connection(connection_string: str) -> ClusterConnection:
    return ClusterConnection(
        connection_string,
        connect_timeout=CONNECT_TIMEOUT,
        server_connect_timeout=SERVER_CONNECT_TIMEOUT,
    )


__all__ = ["ConnectionProducer", "ConnectionLease", "ConnectionFactory"]
