"""
Couchbase database plugin Command Line Interface.

Runs the plugin's lifecycle operations by hand:
- verify: check the admin connection
- create-user: issue a user with a generated credential
- set-credentials: create or update a user with a given credential
- revoke-user: delete a user
"""

from .commands import cli

__all__ = ["cli"]
