"""Tests for pod manifest generation."""

from __future__ import annotations

from kubesocks.manifest import generate_pod_manifest
from kubesocks.session import ProxySession


def test_manifest_is_a_pod():
    """Manifest describes a v1 Pod in the session namespace."""
    manifest = generate_pod_manifest(ProxySession(namespace="team-a"))

    assert manifest["apiVersion"] == "v1"
    assert manifest["kind"] == "Pod"
    assert manifest["metadata"]["name"] == "psocks1080"
    assert manifest["metadata"]["namespace"] == "team-a"
    assert manifest["metadata"]["labels"] == {"env": "test"}


def test_manifest_has_single_proxy_container():
    """The pod runs one container with the session image and port."""
    session = ProxySession(pod_name="myproxy", pod_port=9050, image="socks:1")
    containers = generate_pod_manifest(session)["spec"]["containers"]

    assert len(containers) == 1
    assert containers[0]["name"] == "myproxy"
    assert containers[0]["image"] == "socks:1"
    assert containers[0]["ports"] == [{"containerPort": 9050}]


def test_manifest_pins_linux_nodes():
    """The pod is restricted to linux nodes."""
    manifest = generate_pod_manifest(ProxySession())
    assert manifest["spec"]["nodeSelector"] == {"kubernetes.io/os": "linux"}


def test_local_port_not_in_manifest():
    """The local port only matters to the port-forward."""
    manifest = generate_pod_manifest(ProxySession(local_port=4321))
    assert "4321" not in str(manifest)
