"""
Secret scrubbing for everything that leaves the plugin.

``ErrorSanitizerMiddleware`` wraps a database implementation and replaces
secret values (the admin password) with a placeholder in every error it
raises. Once initialized, a middleware also registers its secrets with the
shared ``RedactingFilter`` on the plugin's loggers, so log records are
scrubbed before any handler sees them for as long as the middleware is alive.
"""

from __future__ import annotations

import logging
import weakref
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

from couchbase_admin import management
from couchbase_admin.connection import http

from . import connection_manager
from . import database as database_module
from .constants import REDACTED_PASSWORD
from .exceptions import PluginError
from .types import Database, StaticUserConfig, Statements, UsernameConfig

T = TypeVar("T")

SecretsFn = Callable[[], Mapping[str, str]]

PLUGIN_LOGGERS = (
    database_module.logger.name,
    connection_manager.logger.name,
    http.logger.name,
    management.logger.name,
)


def scrub(text: str, secrets: Mapping[str, str]) -> str:
    """Replace every secret value in ``text`` with its placeholder."""
    # Longest first so a secret containing another is replaced whole.
    for value in sorted(secrets, key=len, reverse=True):
        if value:
            text = text.replace(value, secrets[value])
    return text


class RedactingFilter(logging.Filter):
    """Logging filter rewriting record messages through :func:`scrub`."""

    def __init__(self, secrets_fn: SecretsFn):
        super().__init__()
        self._secrets_fn = secrets_fn

    def filter(self, record: logging.LogRecord) -> bool:
        secrets = self._secrets_fn()
        if secrets:
            message = record.getMessage()
            scrubbed = scrub(message, secrets)
            if scrubbed != message:
                record.msg = scrubbed
                record.args = None
        return True


# Middlewares whose secrets the shared log filter scrubs; entries vanish with them.
_live_middlewares: weakref.WeakSet[ErrorSanitizerMiddleware] = weakref.WeakSet()


def live_secrets() -> dict[str, str]:
    """Union of the secrets of every live, initialized middleware."""
    secrets: dict[str, str] = {}
    for middleware in list(_live_middlewares):
        secrets.update(middleware.secrets())
    return secrets


_shared_filter = RedactingFilter(live_secrets)


def _attach_shared_filter() -> None:
    for name in PLUGIN_LOGGERS:
        # addFilter ignores a filter that is already attached.
        logging.getLogger(name).addFilter(_shared_filter)


class ErrorSanitizerMiddleware:
    """
    Host-facing wrapper that keeps secret values out of errors and logs.

    Plugin errors keep their type and operation; only the message is
    rewritten. Any other exception is replaced by a ``PluginError`` carrying
    the scrubbed text.
    """

    def __init__(self, database: Database, secrets_fn: SecretsFn):
        self._database = database
        self._secrets_fn = secrets_fn
        self._pending: dict[str, str] = {}

    @property
    def database(self) -> Database:
        return self._database

    def type(self) -> str:
        return self._database.type()

    async def init(
        self,
        conf: Mapping[str, Any],
        verify_connection: bool = False,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        _live_middlewares.add(self)
        _attach_shared_filter()
        # The new password is not part of secrets_fn() until init succeeds.
        self._pending = {str(conf["password"]): REDACTED_PASSWORD} if conf.get("password") else {}
        try:
            return await self._call(self._database.init(conf, verify_connection, timeout))
        finally:
            self._pending = {}

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
        return await self._call(self._database.create_user(statements, username_config, expiration, timeout))

    async def set_credentials(
        self,
        statements: Statements,
        static_config: StaticUserConfig,
        timeout: float | None = None,
    ) -> tuple[str, str]:
        return await self._call(self._database.set_credentials(statements, static_config, timeout))

    async def renew_user(
        self,
        statements: Statements,
        username: str,
        expiration: datetime | None = None,
    ) -> None:
        await self._call(self._database.renew_user(statements, username, expiration))

    async def revoke_user(
        self,
        statements: Statements,
        username: str,
        timeout: float | None = None,
    ) -> None:
        await self._call(self._database.revoke_user(statements, username, timeout))

    async def rotate_root_credentials(self, statements: Sequence[str]) -> dict[str, Any]:
        return await self._call(self._database.rotate_root_credentials(statements))

    async def close(self, timeout: float | None = None) -> None:
        # The instance may reconnect after close, so its secrets stay registered.
        await self._call(self._database.close(timeout))

    def secrets(self) -> dict[str, str]:
        """Secret values to scrub, including a password still being initialized."""
        secrets = dict(self._secrets_fn())
        secrets.update(self._pending)
        return secrets

    async def _call(self, call: Awaitable[T]) -> T:
        try:
            return await call
        except PluginError as e:
            e.message = scrub(e.message, self.secrets())
            e.args = (e.message,)
            # The chained cause carries unscrubbed text, e.g. pydantic input values.
            raise e from None
        except Exception as e:
            raise PluginError(scrub(str(e), self.secrets())) from None


__all__ = ["ErrorSanitizerMiddleware", "RedactingFilter", "scrub", "live_secrets", "PLUGIN_LOGGERS"]
