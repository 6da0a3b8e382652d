"""Proxy session model for kubesocks."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_NAMESPACE = "default"
DEFAULT_POD_NAME = "psocks1080"
DEFAULT_POD_PORT = 1080
DEFAULT_LOCAL_PORT = 1080
DEFAULT_IMAGE = "serjs/go-socks5-proxy"


def default_image() -> str:
    """Get the proxy image used when none is given on the command line.

    KUBESOCKS_IMAGE overrides the built-in default.
    """
    return os.environ.get("KUBESOCKS_IMAGE") or DEFAULT_IMAGE


def validate_port(port: int) -> int:
    """Check that a port number is usable.

    Raises:
        ValueError: If the port is outside 1-65535.
    """
    if not 1 <= port <= 65535:
        raise ValueError(f"Port {port} is out of range (1-65535)")
    return port


@dataclass
class ProxySession:
    """A single proxy pod plus its local port-forward.

    Attributes:
        context: Kubeconfig context to operate against (None for the
            current context of kubectl).
        namespace: Namespace the pod lives in.
        pod_name: Name of the proxy pod.
        pod_port: Port the proxy listens on inside the pod.
        local_port: Local port bound by the port-forward.
        image: Proxy container image.
        skip_cleanup: Leave the pod running when the session ends.
    """

    context: str | None = None
    namespace: str = DEFAULT_NAMESPACE
    pod_name: str = DEFAULT_POD_NAME
    pod_port: int = DEFAULT_POD_PORT
    local_port: int = DEFAULT_LOCAL_PORT
    image: str = DEFAULT_IMAGE
    skip_cleanup: bool = False

    def __post_init__(self) -> None:
        validate_port(self.pod_port)
        validate_port(self.local_port)
