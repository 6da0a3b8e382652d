"""Pod manifest generation for the proxy pod."""

from __future__ import annotations

from typing import Any

from kubesocks.session import ProxySession

NODE_OS = "linux"


def generate_pod_manifest(session: ProxySession) -> dict[str, Any]:
    """Generate a Kubernetes Pod specification for the proxy.

    Args:
        session: Session describing the pod.

    Returns:
        Pod spec as a dictionary.
    """
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": session.pod_name,
            "namespace": session.namespace,
            "labels": {
                "env": "test",
            },
        },
        "spec": {
            "containers": [
                {
                    "name": session.pod_name,
                    "image": session.image,
                    "ports": [
                        {"containerPort": session.pod_port},
                    ],
                },
            ],
            # Proxy images are only published for linux
            "nodeSelector": {
                "kubernetes.io/os": NODE_OS,
            },
        },
    }
