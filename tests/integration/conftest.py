"""Pytest fixtures and configuration for integration tests."""

from __future__ import annotations

import os
import secrets
import shutil
import subprocess

import pytest

from kubesocks.session import DEFAULT_IMAGE


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line(
        "markers",
        "integration: integration tests requiring real infrastructure",
    )
    config.addinivalue_line(
        "markers",
        "kubernetes: tests requiring kubernetes cluster (Kind or similar)",
    )


@pytest.fixture(scope="session")
def has_kubectl() -> bool:
    """Check if kubectl is available on the system."""
    return shutil.which("kubectl") is not None


@pytest.fixture(scope="session")
def kubernetes_available(has_kubectl: bool) -> bool:
    """Check if a Kubernetes cluster is accessible."""
    if not has_kubectl:
        return False

    try:
        result = subprocess.run(
            ["kubectl", "cluster-info"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


@pytest.fixture
def require_kubernetes(kubernetes_available: bool) -> None:
    """Skip test if kubernetes cluster is not available."""
    if not kubernetes_available:
        pytest.skip("kubernetes cluster not available")


@pytest.fixture
def unique_pod_name() -> str:
    """Generate a unique proxy pod name for testing."""
    return f"psocks-test-{secrets.token_hex(4)}"


@pytest.fixture(scope="session")
def proxy_test_image() -> str:
    """Get the proxy image for integration tests.

    Can be overridden with KUBESOCKS_TEST_IMAGE environment variable.
    """
    return os.environ.get("KUBESOCKS_TEST_IMAGE", DEFAULT_IMAGE)


@pytest.fixture(scope="session")
def test_namespace() -> str:
    """Namespace used for integration tests."""
    return os.environ.get("KUBESOCKS_TEST_NAMESPACE", "default")
