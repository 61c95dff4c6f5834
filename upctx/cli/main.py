"""
Main CLI entry point for upctx.
"""

# Standard library imports
import sys
import importlib.metadata
from pathlib import Path
from typing import Optional

# Third-party imports
import typer
from loguru import logger

# Local imports
from upctx.cli.interactive import run_interactive
from upctx.ctx.commands import run_relative, swap_to_previous
from upctx.ctx.derive import derive_state
from upctx.ctx.last_context import LastContextStore, MemoryLastContextStore
from upctx.ctx.navigation import NavigationContext, Root
from upctx.ctx.writer import FileWriter, PrintWriter
from upctx.environment import DEFAULT_DOMAIN, DEFAULT_PREFERRED_CONTEXT, get_env_config
from upctx.errors import UpctxError
from upctx.kube.kubeconfig import KubeConfig
from upctx.upbound.context import UpboundContext
from upctx.utils.paths import get_path_manager
from upctx.utils.rich_console import print_error

PRINT_ONLY = "-"

app = typer.Typer(
    help="upctx - Upbound kubeconfig context navigation\n\nMove between organizations, spaces, groups and control planes and point your kubeconfig at the one you pick."
)


@app.callback()
def main():
    """
    upctx - Upbound kubeconfig context navigation
    """
    get_env_config()


def _writer(upbound: UpboundContext, kubeconfig: Optional[str], kube_context: str, store: LastContextStore):
    if kubeconfig == PRINT_ONLY:
        return PrintWriter()
    return FileWriter(upbound.kubeconfig_path, kube_context, store, verify=upbound.verify)


def _print_config(path: Path, config: KubeConfig) -> None:
    PrintWriter().write(config)


def _run(
    argument: Optional[str],
    kube_context: str,
    short: bool,
    kubeconfig: Optional[str],
    profile: Optional[str],
    domain: str,
    insecure_skip_tls_verify: bool,
) -> Optional[str]:
    kubeconfig_path = Path(kubeconfig) if kubeconfig and kubeconfig != PRINT_ONLY else None
    upbound = UpboundContext.from_flags(
        profile=profile,
        domain=domain,
        insecure_skip_tls_verify=insecure_skip_tls_verify,
        kubeconfig_path=kubeconfig_path,
    )
    store = LastContextStore(get_path_manager().get_last_context_file())
    nav = NavigationContext(
        upbound=upbound, writer=_writer(upbound, kubeconfig, kube_context, store), kube_context=kube_context
    )

    if argument == "-":
        if kubeconfig == PRINT_ONLY:
            return swap_to_previous(
                nav, MemoryLastContextStore(store.read()), upbound.kubeconfig_path, short=short, modify=_print_config
            )
        return swap_to_previous(nav, store, upbound.kubeconfig_path, short=short)

    if argument is not None and not argument.startswith("."):
        # absolute paths start at the root
        return run_relative(nav, argument, Root(), short=short)

    initial = derive_state(upbound, upbound.kubeconfig)
    logger.debug(f"Current context points at {initial.breadcrumbs()}")
    if argument is not None:
        return run_relative(nav, argument, initial, short=short)

    if not sys.stdin.isatty():
        raise typer.BadParameter("an argument is required when not running in a terminal")
    message = run_interactive(nav, initial)
    if message:
        typer.echo(message, err=True)
    return None


@app.command()
def ctx(
    argument: Optional[str] = typer.Argument(
        None,
        help=".. to move to the parent, '-' for the previous context, '.' for the current context, or any relative path.",
    ),
    kube_context: str = typer.Option(
        DEFAULT_PREFERRED_CONTEXT,
        "--context",
        "-c",
        envvar="UP_CONTEXT",
        help="Kubernetes context to operate on.",
    ),
    short: bool = typer.Option(False, "--short", "-s", envvar="UP_SHORT", help="Short output."),
    kubeconfig: Optional[str] = typer.Option(
        None,
        "--kubeconfig",
        "-f",
        help="Kubeconfig to modify when switching contexts. '-' prints the resulting kubeconfig instead.",
    ),
    profile: Optional[str] = typer.Option(None, "--profile", envvar="UP_PROFILE", help="up profile to use."),
    domain: str = typer.Option(DEFAULT_DOMAIN, "--domain", envvar="UP_DOMAIN", help="Root Upbound domain."),
    insecure_skip_tls_verify: bool = typer.Option(
        False,
        "--insecure-skip-tls-verify",
        envvar="UP_INSECURE_SKIP_TLS_VERIFY",
        help="Skip verifying TLS certificates of the Upbound API.",
    ),
):
    """Select an Upbound kubeconfig context."""
    try:
        output = _run(argument, kube_context, short, kubeconfig, profile, domain, insecure_skip_tls_verify)
    except UpctxError as error:
        print_error(str(error))
        raise typer.Exit(1)

    # printing the kubeconfig must be the only thing on stdout
    if output and kubeconfig != PRINT_ONLY:
        typer.echo(output)


@app.command()
def version():
    """Show the upctx version."""
    try:
        typer.echo(f"upctx {importlib.metadata.version('upctx')}")
    except importlib.metadata.PackageNotFoundError:
        typer.echo("upctx (development version)")


if __name__ == "__main__":
    app()
