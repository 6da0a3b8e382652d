"""Proxy pod lifecycle: create or reuse, wait, forward, clean up."""

from __future__ import annotations

import sys
import time
from collections.abc import Callable
from enum import Enum

from kubesocks.kubectl import KubectlClient, KubectlError, PodNotReadyError
from kubesocks.manifest import generate_pod_manifest
from kubesocks.session import ProxySession


class SessionState(Enum):
    """States a proxy session moves through."""

    ABSENT = "absent"
    CREATING = "creating"
    WAITING_READY = "waiting-ready"
    READY = "ready"
    TIMED_OUT = "timed-out"
    FORWARDING = "forwarding"
    ENDED_NORMALLY = "ended-normally"
    INTERRUPTED = "interrupted"
    CLEANED_UP = "cleaned-up"
    LEFT_RUNNING = "left-running"


class ProxyPodOrchestrator:
    """Drives one proxy session from pod lookup to teardown.

    Everything is synchronous: each kubectl call finishes before the next
    one starts, and the port-forward holds the calling thread for the
    lifetime of the session. Cleanup runs on every exit path once pod
    creation has been attempted, including errors and interruption.
    """

    POLL_INTERVAL = 1.0
    MAX_POLLS = 10

    def __init__(
        self,
        client: KubectlClient | None = None,
        poll_interval: float = POLL_INTERVAL,
        max_polls: int = MAX_POLLS,
        fail_on_timeout: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: kubectl client. Defaults to one bound to the session's
                context, created in run().
            poll_interval: Seconds between readiness polls.
            max_polls: Upper bound on readiness polls.
            fail_on_timeout: Raise PodNotReadyError instead of carrying on
                when the pod is not Running after max_polls.
            sleep: Sleep function, replaceable in tests.
        """
        self._client = client
        self._poll_interval = poll_interval
        self._max_polls = max_polls
        self._fail_on_timeout = fail_on_timeout
        self._sleep = sleep
        self.state = SessionState.ABSENT
        self.history: list[SessionState] = []

    def _transition(self, state: SessionState) -> None:
        self.state = state
        self.history.append(state)

    def run(self, session: ProxySession) -> int:
        """Run a proxy session to completion.

        Args:
            session: Session to run.

        Returns:
            Exit status: kubectl port-forward's exit code when the tunnel
            ends on its own, 0 when the session is interrupted.

        Raises:
            KubectlError: If a cluster command fails.
            PodNotReadyError: If fail_on_timeout is set and the pod never
                reached Running.
        """
        client = self._client or KubectlClient(context=session.context)
        self.history = []

        exists = client.pod_exists(session.pod_name, session.namespace)
        if exists:
            print(
                f"Pod/{session.pod_name} already exists in "
                f"{session.namespace}, reusing it.",
                file=sys.stderr,
            )
            self._transition(SessionState.READY)
        else:
            self._transition(SessionState.ABSENT)

        exit_code = 0
        try:
            if not exists:
                self._create(client, session)
                self._wait_for_pod_running(client, session)
            exit_code = self._forward(client, session)
        finally:
            self._teardown(client, session)

        return exit_code

    def _create(self, client: KubectlClient, session: ProxySession) -> None:
        self._transition(SessionState.CREATING)
        print(
            f"Creating Pod/{session.pod_name} in {session.namespace} "
            f"({session.image})...",
            file=sys.stderr,
        )
        client.apply(generate_pod_manifest(session), session.namespace)

    def _wait_for_pod_running(
        self,
        client: KubectlClient,
        session: ProxySession,
    ) -> bool:
        """Poll until the pod reports the Running phase.

        A pod that is not visible yet counts as not running.

        Returns:
            True if the pod reached Running, False if polling gave up.

        Raises:
            PodNotReadyError: If polling gave up and fail_on_timeout is set.
        """
        self._transition(SessionState.WAITING_READY)
        print(f"Waiting for Pod/{session.pod_name} to be running...", file=sys.stderr)

        phase: str | None = None
        for attempt in range(self._max_polls):
            if attempt:
                self._sleep(self._poll_interval)
            phase = client.get_pod_phase(session.pod_name, session.namespace)
            if phase == "Running":
                self._transition(SessionState.READY)
                return True

        self._transition(SessionState.TIMED_OUT)
        msg = (
            f"Pod/{session.pod_name} not running after {self._max_polls} checks "
            f"(phase: {phase or 'unknown'})"
        )
        if self._fail_on_timeout:
            raise PodNotReadyError(msg)
        print(f"Warning: {msg}, forwarding anyway.", file=sys.stderr)
        return False

    def _forward(self, client: KubectlClient, session: ProxySession) -> int:
        self._transition(SessionState.FORWARDING)
        print(
            f"Forwarding localhost:{session.local_port} -> "
            f"Pod/{session.pod_name}:{session.pod_port} "
            "(SOCKS5). Press Ctrl-C to stop.",
            file=sys.stderr,
        )
        try:
            exit_code = client.port_forward(
                session.pod_name,
                session.namespace,
                session.local_port,
                session.pod_port,
            )
        except KeyboardInterrupt:
            self._transition(SessionState.INTERRUPTED)
            return 0

        self._transition(SessionState.ENDED_NORMALLY)
        return exit_code

    def _teardown(self, client: KubectlClient, session: ProxySession) -> None:
        if session.skip_cleanup:
            print(f"Leaving Pod/{session.pod_name} running.", file=sys.stderr)
            self._transition(SessionState.LEFT_RUNNING)
            return

        print(f"Deleting Pod/{session.pod_name}...", file=sys.stderr)
        try:
            client.delete_pod(session.pod_name, session.namespace)
        except KubectlError as e:
            print(f"Warning: failed to delete Pod/{session.pod_name}: {e}", file=sys.stderr)
            self._transition(SessionState.LEFT_RUNNING)
            return
        except KeyboardInterrupt:
            print(
                f"Warning: delete of Pod/{session.pod_name} interrupted, "
                "it may still be running.",
                file=sys.stderr,
            )
            self._transition(SessionState.LEFT_RUNNING)
            return
        self._transition(SessionState.CLEANED_UP)
