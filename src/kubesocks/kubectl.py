"""kubectl wrapper used to talk to the cluster."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
import sys
from typing import Any


class KubectlError(Exception):
    """Base exception for kubectl command failures."""

    pass


class KubectlNotInstalledError(KubectlError):
    """The kubectl CLI is not installed."""

    pass


class KubectlTimeoutError(KubectlError):
    """The kubectl CLI command timed out."""

    pass


class PodNotReadyError(KubectlError):
    """Pod did not reach the Running phase."""

    pass


def kubectl_binary() -> str:
    """Get the kubectl executable name, honoring KUBESOCKS_KUBECTL."""
    return os.environ.get("KUBESOCKS_KUBECTL") or "kubectl"


def check_kubectl_installed(binary: str | None = None) -> None:
    """Verify kubectl can be found on PATH.

    Raises:
        KubectlNotInstalledError: If kubectl is missing.
    """
    binary = binary or kubectl_binary()
    if shutil.which(binary) is None:
        raise KubectlNotInstalledError(
            f"{binary} not found. Install it from "
            "https://kubernetes.io/docs/tasks/tools/ and make sure it is on PATH."
        )


class KubectlClient:
    """Runs kubectl commands against one cluster context.

    Every command gets ``--context`` when a context is set, so the client
    never depends on which context happens to be active later on.
    """

    # Default timeout for kubectl commands (seconds)
    KUBECTL_DEFAULT_TIMEOUT = 30
    # Must outlast the default 30s pod termination grace period
    KUBECTL_DELETE_TIMEOUT = 60

    def __init__(
        self,
        context: str | None = None,
        binary: str | None = None,
        verbose: bool = False,
    ) -> None:
        self.context = context
        self.binary = binary or kubectl_binary()
        self.verbose = verbose

    def _build_cmd(self, *args: str) -> list[str]:
        cmd = [self.binary]
        if self.context:
            cmd.extend(["--context", self.context])
        cmd.extend(args)
        if self.verbose:
            print(f"+ {' '.join(cmd)}", file=sys.stderr)
        return cmd

    def _run_kubectl(
        self,
        *args: str,
        check: bool = True,
        input_data: str | None = None,
        timeout: int | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a kubectl command and capture its output.

        Args:
            *args: Command arguments (without 'kubectl').
            check: Raise on non-zero exit (default True).
            input_data: Optional input to pass to stdin.
            timeout: Timeout in seconds (default KUBECTL_DEFAULT_TIMEOUT).

        Returns:
            CompletedProcess result.

        Raises:
            KubectlNotInstalledError: If kubectl is not installed.
            KubectlTimeoutError: If command times out.
            KubectlError: If command fails and check=True.
        """
        cmd = self._build_cmd(*args)
        timeout_value = timeout if timeout is not None else self.KUBECTL_DEFAULT_TIMEOUT

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                input=input_data,
                timeout=timeout_value,
            )
        except subprocess.TimeoutExpired:
            raise KubectlTimeoutError(
                f"kubectl command timed out after {timeout_value}s: {' '.join(cmd)}\n"
                "This may indicate network issues connecting to the cluster."
            ) from None
        except FileNotFoundError as e:
            raise KubectlNotInstalledError(f"{self.binary} not found") from e

        if check and result.returncode != 0:
            raise KubectlError(f"kubectl {args[0]} failed: {result.stderr.strip()}")

        return result

    def current_context(self) -> str:
        """Get the name of the active kubeconfig context.

        Raises:
            KubectlError: If no current context is set.
        """
        result = self._run_kubectl("config", "current-context")
        context = result.stdout.strip()
        if not context:
            raise KubectlError("No current context is set in kubeconfig")
        return context

    def get_pod_phase(self, name: str, namespace: str) -> str | None:
        """Get the status phase of a pod.

        Args:
            name: Pod name.
            namespace: Pod namespace.

        Returns:
            The phase string (empty while the phase is not reported yet),
            or None if the pod does not exist.

        Raises:
            KubectlError: If the lookup fails for any reason other than
                the pod being absent.
        """
        result = self._run_kubectl(
            "get", "pod", name,
            "-n", namespace,
            "-o", "jsonpath={.status.phase}",
            check=False,
        )
        if result.returncode != 0:
            if "NotFound" in result.stderr:
                return None
            raise KubectlError(f"kubectl get failed: {result.stderr.strip()}")
        return result.stdout.strip()

    def pod_exists(self, name: str, namespace: str) -> bool:
        return self.get_pod_phase(name, namespace) is not None

    def apply(self, manifest: dict[str, Any], namespace: str) -> None:
        """Submit a manifest with ``kubectl apply``."""
        self._run_kubectl(
            "apply", "-n", namespace, "-f", "-",
            input_data=json.dumps(manifest),
        )

    def delete_pod(self, name: str, namespace: str) -> None:
        """Delete a pod and block until it is gone.

        A Terminating pod still reports phase Running, so the next run must
        not be able to see it.
        """
        self._run_kubectl(
            "delete", "pod", name,
            "-n", namespace,
            timeout=self.KUBECTL_DELETE_TIMEOUT,
        )

    def port_forward(
        self,
        name: str,
        namespace: str,
        local_port: int,
        pod_port: int,
    ) -> int:
        """Forward a local port to a pod port.

        Blocks until kubectl exits. KeyboardInterrupt from the terminal is
        left to the caller.

        Returns:
            Exit code of kubectl port-forward.
        """
        cmd = self._build_cmd(
            "port-forward", f"pod/{name}",
            "-n", namespace,
            f"{local_port}:{pod_port}",
        )
        try:
            result = subprocess.run(cmd)
        except FileNotFoundError as e:
            raise KubectlNotInstalledError(f"{self.binary} not found") from e
        return result.returncode
