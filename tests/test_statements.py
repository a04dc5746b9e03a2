"""Unit tests for creation statement parsing."""

import pytest

from couchbase_admin import UserRole
from couchbase_dbplugin import NoRoleError, Role, StatementParseError, StatementParser
from couchbase_dbplugin.exceptions import StatementError


@pytest.fixture
def parser() -> StatementParser:
    return StatementParser()


class TestStatementParser:
    def test_parse_single_role(self, parser: StatementParser) -> None:
        statement = parser.parse('{"roles": [{"role": "bucket_full_access", "bucket_name": "Test"}]}')

        assert statement.roles == [Role(role="bucket_full_access", bucket_name="Test")]

    def test_resource_scope_alias(self, parser: StatementParser) -> None:
        statement = parser.parse('{"roles":[{"role":"bucket_full_access","resource_scope":"Test"}]}')

        assert statement.roles[0].bucket_name == "Test"

    def test_role_order_is_kept(self, parser: StatementParser) -> None:
        statement = parser.parse(
            '{"roles": [{"role": "ro_admin"}, {"role": "bucket_admin", "bucket_name": "Products"}]}'
        )

        assert statement.to_user_roles() == [UserRole("ro_admin"), UserRole("bucket_admin", "Products")]

    def test_unknown_fields_are_ignored(self, parser: StatementParser) -> None:
        statement = parser.parse('{"roles": [{"role": "ro_admin", "comment": "x"}], "ttl": 5}')

        assert statement.roles == [Role(role="ro_admin")]

    def test_empty_roles(self, parser: StatementParser) -> None:
        with pytest.raises(NoRoleError, match="at least one role should be given"):
            parser.parse('{"roles":[]}')

    def test_missing_roles(self, parser: StatementParser) -> None:
        with pytest.raises(NoRoleError):
            parser.parse("{}")

    def test_null_roles(self, parser: StatementParser) -> None:
        with pytest.raises(NoRoleError):
            parser.parse('{"roles": null}')

    def test_null_statement(self, parser: StatementParser) -> None:
        with pytest.raises(NoRoleError):
            parser.parse(" null ")

    def test_null_decodes_to_no_roles(self, parser: StatementParser) -> None:
        statement = parser.decode("null")

        assert not statement.roles
        assert statement.to_user_roles() == []

    @pytest.mark.parametrize(
        "statement",
        [
            "",
            "not json",
            '{"roles": [',
            "[]",
            '{"roles": "bucket_full_access"}',
            '{"roles": [{"bucket_name": "Test"}]}',
            '{"roles": [{"role": ""}]}',
        ],
    )
    def test_invalid_statements(self, parser: StatementParser, statement: str) -> None:
        with pytest.raises(StatementParseError, match="invalid creation statement"):
            parser.parse(statement)

    def test_decode_allows_empty_roles(self, parser: StatementParser) -> None:
        assert parser.decode('{"roles": []}').roles == []

    def test_errors_share_a_base(self) -> None:
        assert issubclass(StatementParseError, StatementError)
        assert issubclass(NoRoleError, StatementError)
        assert not issubclass(NoRoleError, StatementParseError)
