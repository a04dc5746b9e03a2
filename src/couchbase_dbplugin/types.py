"""
Types exchanged between the secrets host and the plugin.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class Statements:
    """
    Statements supplied by the host for one role.

    ``creation`` is the only list this plugin reads; each entry is a JSON
    role statement. The single-string ``*_statements`` fields are the host's
    deprecated format and are folded into the lists by
    :meth:`with_compatibility`.
    """

    creation: list[str] = field(default_factory=list)
    revocation: list[str] = field(default_factory=list)
    rollback: list[str] = field(default_factory=list)
    renewal: list[str] = field(default_factory=list)

    creation_statements: str = ""
    revocation_statements: str = ""
    rollback_statements: str = ""
    renew_statements: str = ""

    def with_compatibility(self) -> Statements:
        """
        Return a copy with each non-empty deprecated field placed at the front
        of its list, as the host's own compatibility helper does. The
        deprecated creation statement therefore wins when both are set.
        """
        return replace(
            self,
            creation=_legacy(self.creation_statements) + self.creation,
            revocation=_legacy(self.revocation_statements) + self.revocation,
            rollback=_legacy(self.rollback_statements) + self.rollback,
            renewal=_legacy(self.renew_statements) + self.renewal,
        )


def _legacy(value: str) -> list[str]:
    return [value] if value else []


@dataclass(frozen=True)
class UsernameConfig:
    """Naming inputs for a generated username."""

    display_name: str = ""
    role_name: str = ""


@dataclass(frozen=True)
class StaticUserConfig:
    """Caller-supplied credential for the static rotation path."""

    username: str
    password: str


@runtime_checkable
class Database(Protocol):
    """
    Contract a secrets host drives a database plugin through.
    """

    def type(self) -> str: ...

    async def init(
        self,
        conf: Mapping[str, Any],
        verify_connection: bool = False,
        timeout: float | None = None,
    ) -> dict[str, Any]: ...

    async def initialize(
        self,
        conf: Mapping[str, Any],
        verify_connection: bool = False,
        timeout: float | None = None,
    ) -> None: ...

    async def create_user(
        self,
        statements: Statements,
        username_config: UsernameConfig,
        expiration: datetime | None = None,
        timeout: float | None = None,
    ) -> tuple[str, str]: ...

    async def set_credentials(
        self,
        statements: Statements,
        static_config: StaticUserConfig,
        timeout: float | None = None,
    ) -> tuple[str, str]: ...

    async def renew_user(
        self,
        statements: Statements,
        username: str,
        expiration: datetime | None = None,
    ) -> None: ...

    async def revoke_user(
        self,
        statements: Statements,
        username: str,
        timeout: float | None = None,
    ) -> None: ...

    async def rotate_root_credentials(self, statements: Sequence[str]) -> dict[str, Any]: ...

    async def close(self, timeout: float | None = None) -> None: ...
