"""
Type definitions for Couchbase management API payloads.

Provides typed wrappers around the JSON documents returned by the cluster's
REST management endpoints instead of raw dicts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AuthDomain(str, Enum):
    """Namespace a user name is resolved against."""

    LOCAL = "local"
    EXTERNAL = "external"


@dataclass(frozen=True)
class UserRole:
    """
    A single role grant.

    Attributes:
        role: Role name (e.g. ``bucket_full_access``)
        bucket_name: Bucket the role applies to, empty for cluster-wide roles
    """

    role: str
    bucket_name: str = ""

    def to_param(self) -> str:
        """Render the role the way the RBAC endpoint expects it (``role[bucket]``)."""
        if self.bucket_name:
            return f"{self.role}[{self.bucket_name}]"
        return self.role

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserRole":
        """Parse a role entry from a user document."""
        return cls(role=data.get("role", ""), bucket_name=data.get("bucket_name", "") or "")


@dataclass
class UserSettings:
    """
    Desired state of a user for an upsert.

    Roles given here replace every role the user currently holds.
    """

    name: str
    password: str | None = None
    roles: list[UserRole] = field(default_factory=list)

    def to_form(self) -> dict[str, str]:
        """Encode as the form body of ``PUT /settings/rbac/users/{domain}/{id}``."""
        form = {
            "name": self.name,
            "roles": ",".join(role.to_param() for role in self.roles),
        }
        if self.password is not None:
            form["password"] = self.password
        return form


@dataclass
class User:
    """
    A user as reported by the cluster.
    """

    id: str
    domain: str = AuthDomain.LOCAL.value
    name: str = ""
    roles: list[UserRole] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Parse a user document."""
        return cls(
            id=data.get("id", ""),
            domain=data.get("domain", AuthDomain.LOCAL.value),
            name=data.get("name", ""),
            roles=[UserRole.from_dict(r) for r in data.get("roles", []) if isinstance(r, dict)],
            raw=data,
        )


@dataclass
class Bucket:
    """
    A bucket opened on the connection.
    """

    name: str
    bucket_type: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Bucket":
        """Parse a bucket document."""
        return cls(name=data.get("name", ""), bucket_type=data.get("bucketType", ""), raw=data)


@dataclass
class ServerInfo:
    """
    Cluster information returned by the bootstrap call.
    """

    version: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerInfo":
        """Parse the ``/pools`` document."""
        return cls(version=data.get("implementationVersion", ""), raw=data)
