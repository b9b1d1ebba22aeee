"""cisync CLI — reconcile configuration item scripts with git."""

import sys

import click
from rich.console import Console
from rich.table import Table

from cisync import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """cisync — configuration item script reconciliation.

    Compares the discovery and remediation scripts embedded in Configuration
    Manager configuration items with the copies kept in git, and writes the
    git copies back where they have drifted.
    """


# ── Reconcile ────────────────────────────────────────────────────────


@main.command()
@click.option("--config", "-c", "config_path", default=None, help="YAML config file")
@click.option("--log-only", is_flag=True, help="Report drift without writing back")
@click.option("--workers", "-w", type=int, default=None, help="Items processed in parallel")
@click.option("--item", "-i", "items", multiple=True, help="Reconcile only these items")
@click.option("--no-sync", is_flag=True, help="Skip the git checkout/pull")
@click.option("--audit", "audit_path", default=None, help="Audit CSV path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def reconcile(
    config_path: str | None,
    log_only: bool,
    workers: int | None,
    items: tuple,
    no_sync: bool,
    audit_path: str | None,
    verbose: bool,
):
    """Reconcile every configured item and print a summary."""
    from cisync.config import load_settings
    from cisync.errors import CisyncError, SyncFailed
    from cisync.logging_setup import configure_logging
    from cisync.management.client import AdminServiceClient
    from cisync.models.item import Action
    from cisync.reconcile.audit import AuditTrail, row_for
    from cisync.reconcile.orchestrator import Reconciler
    from cisync.utils.git_ops import GitSync
    from cisync.utils.script_store import ScriptStore

    configure_logging(verbose)

    try:
        settings = load_settings(
            config_path,
            log_only=True if log_only else None,
            workers=workers,
            audit_path=audit_path,
            items=list(items) or None,
            skip_sync=True if no_sync else None,
        )
    except CisyncError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(2)

    if not settings.service_url:
        console.print("[red]No service_url configured.[/]")
        sys.exit(2)

    mode = "log-only" if settings.log_only else "apply"
    console.print(f"\n[bold blue]cisync[/] — Reconciling {settings.scripts_root} ({mode})\n")

    sync_error = None
    if not settings.skip_sync:
        git = GitSync(settings.repo_path, settings.git_executable, timeout=settings.git_timeout)
        try:
            sync = git.sync(settings.branch)
            if not sync.succeeded:
                for line in sync.diagnostics:
                    console.print(f"  {line}")
                sync_error = SyncFailed(f"Git sync of {settings.branch} failed")
        except CisyncError as e:
            sync_error = e
        if sync_error:
            console.print(f"[red]Git sync failed:[/] {sync_error}")

    audit = AuditTrail(settings.audit_path)
    with AdminServiceClient(
        settings.service_url,
        timeout=settings.service_timeout,
        auth=settings.credentials(),
        verify=settings.verify_tls,
    ) as service:
        reconciler = Reconciler(
            service,
            ScriptStore(settings.scripts_root),
            audit=audit,
            log_only=settings.log_only,
            marker=settings.signature_marker,
            workers=settings.workers,
        )
        if sync_error:
            results = reconciler.fail_all(settings.items or reconciler.scripts.item_names(), sync_error)
        else:
            results = reconciler.reconcile_all(settings.items or None)

    if not results:
        console.print("[yellow]No configuration items found.[/]")
        if sync_error:
            sys.exit(1)
        return

    table = Table(title=f"Reconciliation ({len(results)} items)")
    table.add_column("Item", style="cyan")
    table.add_column("Discovery")
    table.add_column("Remediation")
    table.add_column("Action")

    styles = {
        Action.NO_OP: "green",
        Action.WRITTEN: "blue",
        Action.LOGGED_ONLY: "yellow",
        Action.FAILED: "red",
    }
    for result in results:
        row = row_for(result)
        style = styles[result.action]
        table.add_row(
            result.item_name,
            row.discovery_info,
            row.remediation_info,
            f"[{style}]{result.action.value}[/]",
        )

    console.print(table)
    console.print(f"\nAudit written to {settings.audit_path}")

    if any(r.failed for r in results):
        sys.exit(1)


# ── Normalize ────────────────────────────────────────────────────────


@main.command()
@click.argument("script_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--marker", default=None, help="Signing banner to strip")
def normalize(script_path: str, marker: str | None):
    """Print the canonical form and digest of a local script."""
    from cisync.models.script import RawScript
    from cisync.reconcile.normalizer import DEFAULT_SIGNATURE_MARKER, normalize as canonicalize

    with open(script_path, encoding="utf-8-sig") as f:
        raw = RawScript(f.read())
    canonical = canonicalize(raw, marker or DEFAULT_SIGNATURE_MARKER)

    click.echo(canonical.text)
    console.print(f"\n[dim]sha256 {canonical.digest()}[/]")


# ── Extract ──────────────────────────────────────────────────────────


@main.command()
@click.argument("package_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--kind",
    default="discovery",
    type=click.Choice(["discovery", "remediation"]),
    help="Which embedded script to print",
)
def extract(package_path: str, kind: str):
    """Print an embedded script from a saved SDMPackageXML file."""
    from cisync.errors import ExtractionFailed
    from cisync.models.script import ScriptKind
    from cisync.package.extractor import extract_script

    with open(package_path, encoding="utf-8-sig") as f:
        text = f.read()

    try:
        script = extract_script(text, ScriptKind(kind))
    except ExtractionFailed as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)

    if script is None:
        console.print(f"[yellow]No embedded {kind} script.[/]")
        return
    click.echo(script.text)


if __name__ == "__main__":
    main()
