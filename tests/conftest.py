"""
Pytest configuration for couchbase-dbplugin tests.

This module manages the Couchbase test container lifecycle:
- Checks if a cluster is already answering on the management port
- Otherwise starts a container and provisions it (services, admin, bucket)
- Removes the container after tests only if we started it

Shared connection constants are defined here so every test file can import them
instead of hardcoding URLs, credentials, and bucket names.
"""

import os
import subprocess
import time
from collections.abc import AsyncGenerator, Generator

import httpx
import pytest

from couchbase_dbplugin import ConnectionProducer, CouchbaseDatabase

from tests.fake_cluster import ADMIN_PASSWORD, ADMIN_USER, BUCKET, FakeCluster

# ---------------------------------------------------------------------------
# Shared connection constants (import these in test files)
# ---------------------------------------------------------------------------
MANAGEMENT_PORT = int(os.getenv("COUCHBASE_PORT", "8091"))
COUCHBASE_HOST = os.getenv("COUCHBASE_HOST", "localhost")
COUCHBASE_CONNECTION_STRING = os.getenv("COUCHBASE_CONNECTION_STRING", f"couchbase://{COUCHBASE_HOST}")
COUCHBASE_USERNAME = os.getenv("COUCHBASE_USERNAME", "admin")
COUCHBASE_PASSWORD = os.getenv("COUCHBASE_PASSWORD", "password")
COUCHBASE_BUCKET = os.getenv("COUCHBASE_BUCKET", "Test")

INTEGRATION_CONFIG = {
    "connection_string": COUCHBASE_CONNECTION_STRING,
    "username": COUCHBASE_USERNAME,
    "password": COUCHBASE_PASSWORD,
    "bucket": COUCHBASE_BUCKET,
}

# Container configuration
CONTAINER_NAME = "test-cb"
IMAGE = os.getenv("COUCHBASE_IMAGE", "couchbase:community-6.0.0")
HEALTH_CHECK_TIMEOUT = 120  # seconds
SKIP_CONTAINER = os.getenv("COUCHBASE_SKIP_CONTAINER", "").lower() in ("1", "true", "yes")

MANAGEMENT_URL = f"http://{COUCHBASE_HOST}:{MANAGEMENT_PORT}"


def is_couchbase_responding() -> bool:
    """Check if the management API answers the unauthenticated bootstrap call."""
    try:
        return httpx.get(f"{MANAGEMENT_URL}/pools", timeout=2).status_code == 200
    except httpx.HTTPError:
        return False


def is_cluster_ready() -> bool:
    """Check if the test bucket is reachable with the admin credentials."""
    try:
        response = httpx.get(
            f"{MANAGEMENT_URL}/pools/default/buckets/{COUCHBASE_BUCKET}",
            auth=(COUCHBASE_USERNAME, COUCHBASE_PASSWORD),
            timeout=2,
        )
        return response.status_code == 200
    except httpx.HTTPError:
        return False


def _post(path: str, data: dict[str, str]) -> httpx.Response:
    return httpx.post(
        f"{MANAGEMENT_URL}{path}",
        data=data,
        auth=(COUCHBASE_USERNAME, COUCHBASE_PASSWORD),
        timeout=10,
    )


def provision_cluster() -> bool:
    """Turn a fresh node into a single-node cluster with the test bucket."""
    steps = [
        ("/node/controller/setupServices", {"services": "kv"}, 200),
        ("/pools/default", {"memoryQuota": "256"}, 200),
        (
            "/nodes/self/controller/settings",
            {"path": "/opt/couchbase/var/lib/couchbase/data", "index_path": "/opt/couchbase/var/lib/couchbase/data"},
            200,
        ),
        ("/settings/web", {"username": COUCHBASE_USERNAME, "password": COUCHBASE_PASSWORD, "port": "SAME"}, 200),
        (
            "/pools/default/buckets",
            {"bucketType": "couchbase", "name": COUCHBASE_BUCKET, "ramQuotaMB": "256", "replicaNumber": "0"},
            202,
        ),
    ]
    for path, data, expected in steps:
        try:
            response = _post(path, data)
        except httpx.HTTPError as e:
            print(f"[conftest] {path} failed: {e}")
            return False
        if response.status_code != expected:
            print(f"[conftest] {path} answered {response.status_code}: {response.text}")
            return False

    # Buckets are created asynchronously.
    start_time = time.time()
    while time.time() - start_time < HEALTH_CHECK_TIMEOUT:
        if is_cluster_ready():
            return True
        time.sleep(1)
    return False


def start_container() -> bool:
    """Start and provision the Couchbase test container."""
    try:
        subprocess.run(["docker", "rm", "-f", CONTAINER_NAME], capture_output=True, text=True, timeout=30)
        ports: list[str] = []
        for port in ("8091", "8092", "8093", "8094", "11210"):
            ports += ["-p", f"{port}:{port}"]
        result = subprocess.run(
            ["docker", "run", "-d", "--name", CONTAINER_NAME, *ports, IMAGE],
            capture_output=True,
            text=True,
            timeout=300,
        )
        if result.returncode != 0:
            print(f"Failed to start container: {result.stderr}")
            return False
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        print(f"Failed to start container: {e}")
        return False

    start_time = time.time()
    while time.time() - start_time < HEALTH_CHECK_TIMEOUT:
        if is_couchbase_responding():
            return provision_cluster()
        time.sleep(1)

    print(f"Container did not answer within {HEALTH_CHECK_TIMEOUT}s")
    return False


def stop_container() -> None:
    """Remove the Couchbase test container."""
    try:
        subprocess.run(["docker", "rm", "-f", CONTAINER_NAME], capture_output=True, text=True, timeout=60)
    except (subprocess.TimeoutExpired, FileNotFoundError):
        pass


# Track if we started the container (so we know whether to remove it)
_container_started_by_tests = False


def pytest_configure(config: pytest.Config) -> None:
    """
    Start the Couchbase container if integration tests were explicitly selected
    and no cluster is already available.
    """
    global _container_started_by_tests

    markers = config.getoption("-m", default="")
    if not markers or "not integration" in markers or "integration" not in markers:
        return

    if SKIP_CONTAINER:
        print("\n[conftest] COUCHBASE_SKIP_CONTAINER set, skipping container management")
        return

    if is_cluster_ready():
        print(f"\n[conftest] Couchbase already provisioned at {MANAGEMENT_URL}")
        return

    print(f"\n[conftest] Starting Couchbase container {IMAGE}...")
    if start_container():
        print("[conftest] Couchbase container ready")
        _container_started_by_tests = True
    else:
        print("[conftest] WARNING: Could not start Couchbase. Integration tests will be skipped.")


def pytest_unconfigure(config: pytest.Config) -> None:
    """Remove the Couchbase container only if we started it."""
    global _container_started_by_tests

    if _container_started_by_tests:
        print("\n[conftest] Removing Couchbase container (started by tests)...")
        stop_container()
        _container_started_by_tests = False


@pytest.fixture(scope="session")
def couchbase_available() -> Generator[bool, None, None]:
    """
    Session-scoped fixture that indicates if a provisioned cluster is reachable.

        def test_something(couchbase_available):
            if not couchbase_available:
                pytest.skip("Couchbase not available")
    """
    yield is_cluster_ready()


# ---------------------------------------------------------------------------
# Unit test fixtures backed by the in-memory cluster
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_cluster() -> FakeCluster:
    """A fresh in-memory cluster with the admin user and the ``Test`` bucket."""
    return FakeCluster()


@pytest.fixture
def plugin_config() -> dict[str, str]:
    """Configuration matching the in-memory cluster."""
    return {
        "connection_string": "couchbase://localhost",
        "username": ADMIN_USER,
        "password": ADMIN_PASSWORD,
        "bucket": BUCKET,
    }


@pytest.fixture
def producer(fake_cluster: FakeCluster) -> ConnectionProducer:
    """A connection producer whose connections talk to ``fake_cluster``."""
    return ConnectionProducer(connection_factory=fake_cluster.connection_factory)


@pytest.fixture
async def database(producer: ConnectionProducer, plugin_config: dict[str, str]) -> AsyncGenerator[CouchbaseDatabase, None]:
    """An initialized plugin instance wired to ``fake_cluster``."""
    db = CouchbaseDatabase(producer=producer)
    await db.init(plugin_config)
    yield db
    await db.close()
