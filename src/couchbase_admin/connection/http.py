"""
HTTP Connection Implementation for the Couchbase Admin SDK.

Talks to the cluster's REST management port. One connection is one
``httpx.AsyncClient`` bound to a single seed node.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import quote, urlsplit

import httpx

from ..exceptions import (
    AuthenticationError,
    BucketNotFoundError,
    ConnectionError,
    ManagementError,
    TimeoutError,
)
from ..types import Bucket, ServerInfo

if TYPE_CHECKING:
    from ..management import ClusterManager

logger = logging.getLogger(__name__)

DEFAULT_MANAGEMENT_PORT = 8091
DEFAULT_TLS_MANAGEMENT_PORT = 18091


def management_url(connection_string: str) -> str:
    """
    Translate a connection string into the base URL of the management API.

    Accepted forms:
        couchbase://host[,host2...][?params]   -> http://host:8091
        couchbases://host[,host2...]           -> https://host:18091
        http(s)://host[:port]                  -> used as is

    Only the first seed host is used.

    Raises:
        ValueError: If the connection string has no host or an unknown scheme
    """
    raw = connection_string.strip()
    if "://" not in raw:
        raw = f"couchbase://{raw}"

    scheme, rest = raw.split("://", 1)
    scheme = scheme.lower()
    hosts = rest.split("/", 1)[0].split("?", 1)[0]
    seed = hosts.split(",", 1)[0].strip()
    if not seed:
        raise ValueError(f"No host in connection string {connection_string!r}")

    if scheme in ("http", "https"):
        return f"{scheme}://{seed}".rstrip("/")

    if scheme == "couchbase":
        http_scheme, default_port = "http", DEFAULT_MANAGEMENT_PORT
    elif scheme == "couchbases":
        http_scheme, default_port = "https", DEFAULT_TLS_MANAGEMENT_PORT
    else:
        raise ValueError(f"Unsupported connection string scheme {scheme!r}")

    # Data-service ports in the seed list do not apply to the management API.
    host = urlsplit(f"//{seed}").hostname or seed
    if ":" in host:
        host = f"[{host}]"
    return f"{http_scheme}://{host}:{default_port}"


class ClusterConnection:
    """
    Connection to a Couchbase cluster's management API.

    Lifecycle mirrors the vendor SDK: ``connect()`` bootstraps against the
    seed node, ``authenticate()`` binds admin credentials, ``open_bucket()``
    makes sure a bucket is reachable, and ``manager()`` derives a handle for
    cluster-level administrative calls.

    Usage:
        async with ClusterConnection("couchbase://localhost") as cluster:
            await cluster.authenticate("Administrator", "password")
            await cluster.open_bucket("default")
            users = await cluster.manager("Administrator", "password").get_users()
    """

    def __init__(
        self,
        connection_string: str,
        connect_timeout: float = 30.0,
        server_connect_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the connection.

        Args:
            connection_string: ``couchbase://``, ``couchbases://`` or ``http(s)://`` address
            connect_timeout: Upper bound in seconds for the whole bootstrap
            server_connect_timeout: Per-node socket and request timeout in seconds
            transport: Optional httpx transport (used to inject test doubles)
        """
        self.connection_string = connection_string
        self.url = management_url(connection_string)
        self.connect_timeout = connect_timeout
        self.server_connect_timeout = server_connect_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._auth: httpx.BasicAuth | None = None
        self._server_info: ServerInfo | None = None
        self._buckets: dict[str, Bucket] = {}

    @property
    def is_connected(self) -> bool:
        """Check if the connection is established."""
        return self._client is not None

    @property
    def is_authenticated(self) -> bool:
        """Check if credentials have been accepted by the cluster."""
        return self._auth is not None

    @property
    def server_info(self) -> ServerInfo | None:
        """Cluster information gathered while bootstrapping."""
        return self._server_info

    @property
    def buckets(self) -> dict[str, Bucket]:
        """Buckets opened on this connection, by name."""
        return dict(self._buckets)

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def connect(self) -> Self:
        """
        Bootstrap against the seed node. Returns self for fluent API.

        Raises:
            TimeoutError: If bootstrapping exceeds ``connect_timeout``
            ConnectionError: If the node is unreachable or answers with an error
        """
        if self._client is not None:
            return self

        client = httpx.AsyncClient(
            base_url=self.url,
            timeout=httpx.Timeout(self.server_connect_timeout),
            transport=self._transport,
        )
        try:
            response = await asyncio.wait_for(client.get("/pools"), timeout=self.connect_timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            await client.aclose()
            raise TimeoutError(f"Timed out connecting to {self.url} after {self.connect_timeout}s")
        except httpx.RequestError as e:
            await client.aclose()
            raise ConnectionError(f"Could not connect to {self.url}: {e}")
        except asyncio.CancelledError:
            await client.aclose()
            raise

        if response.status_code != 200:
            await client.aclose()
            raise ConnectionError(
                f"Unexpected response from {self.url}: {response.status_code} - {response.text}",
                code=response.status_code,
            )

        self._client = client
        self._server_info = ServerInfo.from_dict(_json_object(response))
        logger.debug(f"Connected to {self.url} (server {self._server_info.version or 'unknown'})")
        return self

    async def authenticate(self, username: str, password: str) -> dict[str, Any]:
        """
        Validate and bind credentials for subsequent calls.

        Args:
            username: Admin user name
            password: Admin password

        Returns:
            The identity document reported by the cluster

        Raises:
            ConnectionError: If not connected or the request fails
            AuthenticationError: If the cluster rejects the credentials
        """
        auth = httpx.BasicAuth(username, password)
        response = await self.request("GET", "/whoami", auth=auth)

        if response.status_code in (401, 403):
            raise AuthenticationError(f"Authentication failed for user {username!r}", code=response.status_code)
        if response.status_code != 200:
            raise AuthenticationError(
                f"Authentication failed: {response.status_code} - {response.text}",
                code=response.status_code,
            )

        self._auth = auth
        return _json_object(response)

    async def open_bucket(self, name: str) -> Bucket:
        """
        Open a bucket on this connection.

        Args:
            name: Bucket name

        Raises:
            AuthenticationError: If ``authenticate()`` has not succeeded
            BucketNotFoundError: If the bucket does not exist
            ManagementError: For any other rejection
        """
        if self._auth is None:
            raise AuthenticationError("Not authenticated. Call authenticate() first.")

        path = f"/pools/default/buckets/{quote(name, safe='')}"
        response = await self.request("GET", path, auth=self._auth)

        if response.status_code == 404:
            raise BucketNotFoundError(f"Bucket {name!r} not found", bucket=name, code=404)
        if response.status_code != 200:
            raise ManagementError(
                f"Could not open bucket {name!r}: {response.status_code} - {response.text}",
                path=path,
                code=response.status_code,
            )

        bucket = Bucket.from_dict(_json_object(response)) if response.content else Bucket(name=name)
        if not bucket.name:
            bucket.name = name
        self._buckets[name] = bucket
        return bucket

    def manager(self, username: str, password: str) -> "ClusterManager":
        """
        Derive a management handle scoped to the given credentials.

        Raises:
            ConnectionError: If not connected
        """
        from ..management import ClusterManager

        if self._client is None:
            raise ConnectionError("Not connected. Call connect() first.")
        return ClusterManager(self, httpx.BasicAuth(username, password))

    async def request(
        self,
        method: str,
        path: str,
        auth: httpx.Auth | None = None,
        data: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Send a raw request to the management API.

        Raises:
            ConnectionError: If not connected or the request fails in transit
        """
        if self._client is None:
            raise ConnectionError("Not connected. Call connect() first.")

        try:
            return await self._client.request(method, path, auth=auth or self._auth, data=data)
        except httpx.TimeoutException as e:
            raise TimeoutError(f"{method} {path} timed out: {e}")
        except httpx.RequestError as e:
            raise ConnectionError(f"{method} {path} failed: {e}")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        self._auth = None
        self._buckets.clear()


def _json_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body, tolerating empty or non-object payloads."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
