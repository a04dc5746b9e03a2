"""
Couchbase Admin SDK Connection Module.

Provides the HTTP connection to the cluster's management API.
"""

from .http import ClusterConnection, management_url

__all__ = [
    "ClusterConnection",
    "management_url",
]
