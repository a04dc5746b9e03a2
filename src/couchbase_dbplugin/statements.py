"""
Creation statement parsing.

A creation statement is a JSON document listing the roles a new user gets::

    {
        "roles": [
            {"role": "bucket_admin", "bucket_name": "Products"}
        ]
    }

``resource_scope`` is accepted in place of ``bucket_name``.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from couchbase_admin import UserRole

from .exceptions import NoRoleError, StatementParseError


class Role(BaseModel):
    """A role grant, optionally bound to a bucket."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    role: str = Field(min_length=1)
    bucket_name: str = Field(
        default="",
        validation_alias=AliasChoices("bucket_name", "resource_scope"),
    )

    def to_user_role(self) -> UserRole:
        return UserRole(role=self.role, bucket_name=self.bucket_name)


class RoleStatement(BaseModel):
    """Decoded creation statement."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # null decodes like an absent list.
    roles: list[Role] | None = None

    def to_user_roles(self) -> list[UserRole]:
        return [r.to_user_role() for r in self.roles or []]


class StatementParser:
    """
    Decodes creation statements into role lists.

    Stateless; a single instance can be shared freely.
    """

    def decode(self, statement: str) -> RoleStatement:
        """
        Decode without checking the role list. A JSON ``null`` decodes to an
        empty statement.

        Raises:
            StatementParseError: If the statement is not a JSON object of the
                expected shape
        """
        if statement.strip() == "null":
            return RoleStatement()
        try:
            return RoleStatement.model_validate_json(statement)
        except ValidationError as e:
            raise StatementParseError(f"invalid creation statement: {_first_error(e)}") from e

    def parse(self, statement: str) -> RoleStatement:
        """
        Decode a statement and require at least one role.

        Raises:
            StatementParseError: If the statement cannot be decoded
            NoRoleError: If it decodes to an empty role list
        """
        parsed = self.decode(statement)
        if not parsed.roles:
            raise NoRoleError()
        return parsed


def _first_error(error: ValidationError) -> str:
    errors = error.errors(include_url=False, include_input=False)
    if not errors:
        return str(error)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


__all__ = ["Role", "RoleStatement", "StatementParser"]
