"""Typer CLI for kubesocks."""

from __future__ import annotations

import json
import signal
from dataclasses import replace
from typing import Annotated

import typer

from kubesocks import __version__
from kubesocks.kubectl import (
    KubectlClient,
    KubectlError,
    check_kubectl_installed,
    kubectl_binary,
)
from kubesocks.manifest import generate_pod_manifest
from kubesocks.orchestrator import ProxyPodOrchestrator
from kubesocks.session import (
    DEFAULT_IMAGE,
    DEFAULT_LOCAL_PORT,
    DEFAULT_NAMESPACE,
    DEFAULT_POD_NAME,
    DEFAULT_POD_PORT,
    ProxySession,
    default_image,
)

app = typer.Typer(
    name="kubesocks",
    help="Run a SOCKS5 proxy pod and forward a local port to it.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(f"kubesocks {__version__}")
        typer.echo(f"  kubectl: {kubectl_binary()}")
        raise typer.Exit()


def show_help() -> None:
    """Show the usage message."""
    help_text = f"""kubesocks - SOCKS5 proxy into a Kubernetes cluster

USAGE:
    kubesocks [OPTIONS]

Creates a SOCKS5 proxy pod (or reuses one with the same name), forwards a
local port to it and deletes the pod again when the forward ends.

OPTIONS:
    -h, --help              Show this help message and exit
    -V, --version           Show kubesocks version and exit
    -n, --namespace NS      Namespace for the proxy pod (default: {DEFAULT_NAMESPACE})
    -p, --pod-port PORT     Port the proxy listens on in the pod (default: {DEFAULT_POD_PORT})
    -l, --local-port PORT   Local port to forward (default: {DEFAULT_LOCAL_PORT})
    -N, --name NAME         Name of the proxy pod (default: {DEFAULT_POD_NAME})
    -i, --image IMAGE       Proxy image (default: {DEFAULT_IMAGE},
                            or $KUBESOCKS_IMAGE)
    -c, --context CONTEXT   Kubeconfig context (default: current context)
    --skip-cleanup-proxy    Leave the proxy pod running on exit
    --fail-on-timeout       Exit with an error if the pod is not running
                            after the readiness wait
    --dry-run               Show the session and pod manifest, then exit
    -v, --verbose           Print each kubectl command before running it

EXAMPLES:
    kubesocks                               Proxy on localhost:1080
    kubesocks -n team-a -l 9051             Pod in team-a, local port 9051
    kubesocks -c staging --skip-cleanup-proxy
                                            Keep the pod for the next run

    curl --socks5-hostname localhost:1080 http://my-service.team-a:8080/"""
    typer.echo(help_text)


def help_callback(value: bool) -> None:
    """Print help and exit."""
    if value:
        show_help()
        raise typer.Exit()


def show_dry_run(session: ProxySession, fail_on_timeout: bool) -> None:
    """Show the resolved session and the manifest that would be applied."""
    typer.echo("Dry-run mode: no kubectl commands will be run")
    typer.echo("")
    typer.echo(f"Context: {session.context or '(current)'}")
    typer.echo(f"Namespace: {session.namespace}")
    typer.echo(f"Pod name: {session.pod_name}")
    typer.echo(f"Image: {session.image}")
    typer.echo(f"Forward: localhost:{session.local_port} -> {session.pod_port}")
    typer.echo(f"--skip-cleanup-proxy: {session.skip_cleanup}")
    typer.echo(f"--fail-on-timeout: {fail_on_timeout}")
    typer.echo("")
    typer.echo("Pod manifest:")
    typer.echo(json.dumps(generate_pod_manifest(session), indent=2))


@app.command()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show kubesocks version and exit.",
        ),
    ] = False,
    help_opt: Annotated[
        bool,
        typer.Option(
            "--help",
            "-h",
            callback=help_callback,
            is_eager=True,
            help="Show this help message and exit.",
        ),
    ] = False,
    namespace: Annotated[
        str,
        typer.Option("--namespace", "-n", help="Namespace for the proxy pod."),
    ] = DEFAULT_NAMESPACE,
    pod_port: Annotated[
        int,
        typer.Option(
            "--pod-port", "-p", min=1, max=65535,
            help="Port the proxy listens on inside the pod.",
        ),
    ] = DEFAULT_POD_PORT,
    local_port: Annotated[
        int,
        typer.Option(
            "--local-port", "-l", min=1, max=65535,
            help="Local port to forward.",
        ),
    ] = DEFAULT_LOCAL_PORT,
    name: Annotated[
        str,
        typer.Option("--name", "-N", help="Name of the proxy pod."),
    ] = DEFAULT_POD_NAME,
    image: Annotated[
        str | None,
        typer.Option("--image", "-i", help="Proxy container image."),
    ] = None,
    context: Annotated[
        str | None,
        typer.Option("--context", "-c", help="Kubeconfig context."),
    ] = None,
    skip_cleanup: Annotated[
        bool,
        typer.Option(
            "--skip-cleanup-proxy",
            help="Leave the proxy pod running on exit.",
        ),
    ] = False,
    fail_on_timeout: Annotated[
        bool,
        typer.Option(
            "--fail-on-timeout",
            help="Fail if the pod is not running after the readiness wait.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show the session and pod manifest, then exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Print kubectl commands."),
    ] = False,
) -> None:
    """Run a SOCKS5 proxy pod and forward a local port to it."""
    session = ProxySession(
        context=context,
        namespace=namespace,
        pod_name=name,
        pod_port=pod_port,
        local_port=local_port,
        image=image or default_image(),
        skip_cleanup=skip_cleanup,
    )

    if dry_run:
        show_dry_run(session, fail_on_timeout)
        raise typer.Exit()

    try:
        check_kubectl_installed()
    except KubectlError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    # Ambient context is resolved once and pinned with --context from here on
    if not session.context:
        try:
            current = KubectlClient(verbose=verbose).current_context()
        except KubectlError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None
        session = replace(session, context=current)

    # SIGTERM ends the forward the same way Ctrl-C does
    signal.signal(signal.SIGTERM, signal.default_int_handler)

    orchestrator = ProxyPodOrchestrator(
        client=KubectlClient(context=session.context, verbose=verbose),
        fail_on_timeout=fail_on_timeout,
    )
    try:
        exit_code = orchestrator.run(session)
    except KubectlError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    raise typer.Exit(exit_code)
