# Couchbase dynamic credentials examples

# Select a part of the code and execute it as a cell, or run the whole file.
# Use the comments as cell definitions

# Load requirements

import asyncio
import os

import couchbase_dbplugin
from couchbase_dbplugin import StaticUserConfig, Statements, UsernameConfig


# Cluster settings from the environment
CONFIG = {
    "connection_string": os.getenv("COUCHBASE_CONNECTION_STRING", "couchbase://localhost"),
    "username": os.getenv("COUCHBASE_USERNAME", "Administrator"),
    "password": os.getenv("COUCHBASE_PASSWORD", "password"),
    "bucket": os.getenv("COUCHBASE_BUCKET", "travel-sample"),
}

# Roles granted to every user created below
READ_ONLY = Statements(creation=['{"roles": [{"role": "ro_admin"}]}'])
BUCKET_ACCESS = Statements(
    creation=[f'{{"roles": [{{"role": "bucket_full_access", "bucket_name": "{CONFIG["bucket"]}"}}]}}']
)


async def create_dynamic_user(db):
    # A fresh username and password, valid until revoked
    username, password = await db.create_user(
        BUCKET_ACCESS,
        UsernameConfig(display_name="example", role_name="bucket"),
        timeout=30,
    )
    print("User created:", username, password)
    return username


async def set_static_user(db):
    username, _ = await db.set_credentials(
        READ_ONLY,
        StaticUserConfig(username="reporting", password="reporting-password"),
    )
    print("Static user set:", username)
    return username


async def revoke(db, username):
    await db.revoke_user(Statements(), username)
    print("User revoked:", username)


async def main():
    db = couchbase_dbplugin.new()
    try:
        await db.init(CONFIG, verify_connection=True)

        dynamic = await create_dynamic_user(db)
        static = await set_static_user(db)

        await revoke(db, dynamic)
        await revoke(db, static)
    finally:
        await db.close()


if __name__ == "__main__":
    # Run the async function
    asyncio.run(main())
