"""Unit tests for the admin client and plugin exception hierarchies."""

import couchbase_admin
import couchbase_dbplugin
from couchbase_admin.exceptions import (
    AuthenticationError,
    BucketNotFoundError,
    CouchbaseError,
    ConnectionError,
    ManagementError,
    TimeoutError,
    UserNotFoundError,
)


class TestCouchbaseError:
    def test_init_message_only(self) -> None:
        err = CouchbaseError("something broke")
        assert err.message == "something broke"
        assert err.code is None
        assert str(err) == "something broke"

    def test_init_with_code(self) -> None:
        err = CouchbaseError("server error", code=500)
        assert err.message == "server error"
        assert err.code == 500

    def test_is_exception(self) -> None:
        assert isinstance(CouchbaseError("test"), Exception)


class TestConnectionErrors:
    def test_connection_error(self) -> None:
        assert isinstance(ConnectionError("refused"), CouchbaseError)

    def test_timeout_is_connection_error(self) -> None:
        err = TimeoutError("too slow")
        assert isinstance(err, ConnectionError)
        assert not isinstance(err, AuthenticationError)

    def test_authentication_error(self) -> None:
        err = AuthenticationError("bad credentials", code=401)
        assert isinstance(err, CouchbaseError)
        assert not isinstance(err, ConnectionError)
        assert err.code == 401


class TestBucketNotFoundError:
    def test_carries_bucket(self) -> None:
        err = BucketNotFoundError("Bucket 'b' not found", bucket="b", code=404)
        assert err.bucket == "b"
        assert err.code == 404


class TestManagementError:
    def test_init_minimal(self) -> None:
        err = ManagementError("rejected")
        assert err.message == "rejected"
        assert err.path is None
        assert err.code is None

    def test_init_full(self) -> None:
        err = ManagementError("rejected", path="/settings/rbac/users/local/bob", code=400)
        assert err.path == "/settings/rbac/users/local/bob"
        assert err.code == 400

    def test_user_not_found(self) -> None:
        err = UserNotFoundError("Unknown user.", path="/settings/rbac/users/local/bob", code=404)
        assert isinstance(err, ManagementError)


class TestPluginErrors:
    def test_operation_prefix(self) -> None:
        err = couchbase_dbplugin.UpsertError("error when upserting user: nope", operation="create_user")
        assert str(err) == "create_user: error when upserting user: nope"
        assert err.message == "error when upserting user: nope"

    def test_without_operation(self) -> None:
        assert str(couchbase_dbplugin.PluginError("plain")) == "plain"

    def test_defaults(self) -> None:
        assert couchbase_dbplugin.NotInitializedError().message == "connection has not been initialized"
        assert couchbase_dbplugin.EmptyStatementError().message == "empty creation statements"
        assert couchbase_dbplugin.NoRoleError().message == "at least one role should be given in creation statement"

    def test_statement_errors_share_base(self) -> None:
        for cls in (
            couchbase_dbplugin.StatementParseError,
            couchbase_dbplugin.EmptyStatementError,
            couchbase_dbplugin.NoRoleError,
        ):
            assert issubclass(cls, couchbase_dbplugin.StatementError)

    def test_revoke_error_carries_username(self) -> None:
        err = couchbase_dbplugin.RevokeError("gone", username="bob")
        assert err.username == "bob"
        assert err.operation is None

    def test_plugin_connection_error_is_distinct(self) -> None:
        assert not issubclass(couchbase_dbplugin.ConnectionError, couchbase_admin.CouchbaseError)
        assert not issubclass(couchbase_dbplugin.ConnectionError, ConnectionError)


def test_exports() -> None:
    for name in ("CouchbaseError", "ConnectionError", "AuthenticationError", "TimeoutError", "ManagementError"):
        assert hasattr(couchbase_admin, name)
