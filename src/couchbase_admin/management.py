"""
Cluster management for the Couchbase Admin SDK.

Wraps the RBAC user endpoints of the management API.
"""

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from .exceptions import ManagementError, UserNotFoundError
from .types import AuthDomain, User, UserSettings

if TYPE_CHECKING:
    from .connection.http import ClusterConnection

logger = logging.getLogger(__name__)


def _user_path(domain: str, username: str) -> str:
    return f"/settings/rbac/users/{quote(domain, safe='')}/{quote(username, safe='')}"


class ClusterManager:
    """
    Administrative handle derived from a ``ClusterConnection``.

    Every call is authenticated with the credentials the manager was created
    with, independently of the ones bound on the connection.
    """

    def __init__(self, connection: "ClusterConnection", auth: httpx.Auth):
        self._connection = connection
        self._auth = auth

    async def upsert_user(
        self,
        domain: str | AuthDomain,
        username: str,
        settings: UserSettings,
    ) -> None:
        """
        Create a user, or replace its password and roles if it exists.

        Args:
            domain: Authentication domain (``local`` or ``external``)
            username: User id
            settings: Desired name, password and full role set

        Raises:
            ManagementError: If the cluster rejects the request
        """
        domain = AuthDomain(domain).value
        if domain == AuthDomain.EXTERNAL.value and settings.password is not None:
            raise ManagementError("Passwords cannot be set for external users")

        path = _user_path(domain, username)
        response = await self._connection.request("PUT", path, auth=self._auth, data=settings.to_form())
        if response.status_code not in (200, 201, 202):
            raise ManagementError(
                f"Could not upsert user: {response.status_code} - {response.text}",
                path=path,
                code=response.status_code,
            )
        logger.debug(f"Upserted user {username!r} in domain {domain!r}")

    async def remove_user(self, domain: str | AuthDomain, username: str) -> None:
        """
        Delete a user.

        Raises:
            UserNotFoundError: If the user does not exist
            ManagementError: If the cluster rejects the request
        """
        domain = AuthDomain(domain).value
        path = _user_path(domain, username)
        response = await self._connection.request("DELETE", path, auth=self._auth)
        if response.status_code == 404:
            raise UserNotFoundError(_error_text(response, "Unknown user."), path=path, code=404)
        if response.status_code not in (200, 202, 204):
            raise ManagementError(
                f"Could not remove user: {response.status_code} - {response.text}",
                path=path,
                code=response.status_code,
            )
        logger.debug(f"Removed user {username!r} from domain {domain!r}")

    async def get_user(self, domain: str | AuthDomain, username: str) -> User:
        """
        Fetch a single user.

        Raises:
            UserNotFoundError: If the user does not exist
            ManagementError: If the cluster rejects the request
        """
        domain = AuthDomain(domain).value
        path = _user_path(domain, username)
        response = await self._connection.request("GET", path, auth=self._auth)
        if response.status_code == 404:
            raise UserNotFoundError(_error_text(response, "Unknown user."), path=path, code=404)
        if response.status_code != 200:
            raise ManagementError(
                f"Could not get user: {response.status_code} - {response.text}",
                path=path,
                code=response.status_code,
            )
        return User.from_dict(response.json())

    async def get_users(self, domain: str | AuthDomain = AuthDomain.LOCAL) -> list[User]:
        """List every user of a domain."""
        domain = AuthDomain(domain).value
        path = f"/settings/rbac/users/{domain}"
        response = await self._connection.request("GET", path, auth=self._auth)
        if response.status_code != 200:
            raise ManagementError(
                f"Could not list users: {response.status_code} - {response.text}",
                path=path,
                code=response.status_code,
            )
        data = response.json()
        return [User.from_dict(u) for u in data if isinstance(u, dict)] if isinstance(data, list) else []


def _error_text(response: httpx.Response, default: str) -> str:
    # The cluster answers 404s with a bare JSON string such as "Unknown user."
    try:
        body = response.json()
    except ValueError:
        return response.text or default
    return body if isinstance(body, str) and body else default
