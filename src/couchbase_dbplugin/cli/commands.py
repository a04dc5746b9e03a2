"""
CLI commands for operating the Couchbase database plugin by hand.

Uses click for command-line argument parsing.
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from .. import new
from ..exceptions import PluginError
from ..middleware import ErrorSanitizerMiddleware
from ..types import StaticUserConfig, Statements, UsernameConfig

T = TypeVar("T")


def run_async(coro: Any) -> Any:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def _with_plugin(
    ctx: click.Context,
    action: Callable[[ErrorSanitizerMiddleware], Awaitable[T]],
    verify: bool = True,
) -> T:
    """Initialize a plugin instance from the CLI options, run ``action``, close it."""

    async def run() -> T:
        db = new()
        try:
            await db.init(ctx.obj["config"], verify_connection=verify, timeout=ctx.obj["timeout"])
            return await action(db)
        finally:
            await db.close()

    try:
        return run_async(run())
    except PluginError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option(
    "--connection-string",
    "-c",
    envvar="COUCHBASE_CONNECTION_STRING",
    default="couchbase://localhost",
    help="Cluster connection string",
)
@click.option(
    "--username",
    "-u",
    envvar="COUCHBASE_USERNAME",
    default="Administrator",
    help="Admin username",
)
@click.option(
    "--password",
    "-p",
    envvar="COUCHBASE_PASSWORD",
    default="",
    help="Admin password",
)
@click.option(
    "--bucket",
    "-b",
    envvar="COUCHBASE_BUCKET",
    default="",
    help="Bucket opened before cluster-level calls (servers before 6.5)",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Deadline in seconds for each operation",
)
@click.pass_context
def cli(
    ctx: click.Context,
    connection_string: str,
    username: str,
    password: str,
    bucket: str,
    timeout: float | None,
) -> None:
    """Couchbase dynamic credential plugin tool."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = {
        "connection_string": connection_string,
        "username": username,
        "password": password,
        "bucket": bucket,
    }
    ctx.obj["timeout"] = timeout


@cli.command()
@click.pass_context
def verify(ctx: click.Context) -> None:
    """Check that the admin connection can be established."""

    async def action(db: ErrorSanitizerMiddleware) -> None:
        return None

    _with_plugin(ctx, action)
    click.echo("ok")


@cli.command("create-user")
@click.option("--statement", "-s", required=True, help="JSON creation statement")
@click.option("--display-name", default="", help="Display name used in the generated username")
@click.option("--role-name", default="", help="Role name used in the generated username")
@click.pass_context
def create_user(ctx: click.Context, statement: str, display_name: str, role_name: str) -> None:
    """Create a user with a generated username and password."""

    async def action(db: ErrorSanitizerMiddleware) -> tuple[str, str]:
        return await db.create_user(
            Statements(creation=[statement]),
            UsernameConfig(display_name=display_name, role_name=role_name),
            timeout=ctx.obj["timeout"],
        )

    username, password = _with_plugin(ctx, action, verify=False)
    click.echo(f"username: {username}")
    click.echo(f"password: {password}")


@cli.command("set-credentials")
@click.option("--statement", "-s", required=True, help="JSON creation statement")
@click.option("--user", required=True, help="Username to create or update")
@click.option("--user-password", required=True, help="Password to set")
@click.pass_context
def set_credentials(ctx: click.Context, statement: str, user: str, user_password: str) -> None:
    """Create a user, or replace its password and roles."""

    async def action(db: ErrorSanitizerMiddleware) -> tuple[str, str]:
        return await db.set_credentials(
            Statements(creation=[statement]),
            StaticUserConfig(username=user, password=user_password),
            timeout=ctx.obj["timeout"],
        )

    username, _ = _with_plugin(ctx, action, verify=False)
    click.echo(f"username: {username}")


@cli.command("revoke-user")
@click.argument("username")
@click.pass_context
def revoke_user(ctx: click.Context, username: str) -> None:
    """Delete a user."""

    async def action(db: ErrorSanitizerMiddleware) -> None:
        await db.revoke_user(Statements(), username, timeout=ctx.obj["timeout"])

    _with_plugin(ctx, action, verify=False)
    click.echo("ok")


def main() -> None:
    """Entry point for the console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
