"""
Plugin configuration.

The host hands the plugin a loose mapping; ``PluginConfig`` decodes it into an
immutable object. Values are coerced weakly (numbers become strings) and keys
the plugin does not know are ignored.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import ConfigValidationError

# Fields checked for emptiness by init, in order.
REQUIRED_FIELDS = ("connection_string", "username", "password")


class PluginConfig(BaseModel):
    """
    Immutable configuration for the administrative connection.

    Attributes:
        connection_string: Cluster address, e.g. ``couchbase://localhost``.
        username: Admin username.
        password: Admin password.
        bucket: Bucket opened so that cluster-level calls are accepted by
            older servers. Skipped when empty.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
        str_strip_whitespace=False,
    )

    connection_string: str = ""
    username: str = ""
    password: str = ""
    bucket: str = ""

    @classmethod
    def from_mapping(cls, conf: Mapping[str, Any]) -> PluginConfig:
        """
        Decode a host configuration mapping.

        Raises:
            ConfigValidationError: If a field has a type that cannot be coerced
        """
        try:
            return cls.model_validate(dict(conf))
        except ValidationError as e:
            # Input values are left out, they may be the password.
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors(include_url=False, include_input=False)
            )
            raise ConfigValidationError(f"invalid configuration: {problems}", operation="init") from e

    def validate_required(self) -> None:
        """
        Reject empty required fields.

        Raises:
            ConfigValidationError: Naming the first empty field
        """
        for name in REQUIRED_FIELDS:
            if not getattr(self, name):
                raise ConfigValidationError(f"{name} cannot be empty", operation="init")

    def __repr__(self) -> str:
        return (
            f"PluginConfig(connection_string={self.connection_string!r}, "
            f"username={self.username!r}, password='***', bucket={self.bucket!r})"
        )


__all__ = ["PluginConfig", "REQUIRED_FIELDS"]
