from pathlib import Path
from typing import List, Optional

import typer

from edgectl.commands import exit_on_error, load_settings
from edgectl.modules.kube import ClusterClient
from edgectl.modules.summary import report


def status(
    ctx: typer.Context,
    kubeconfig: Optional[Path] = typer.Option(
        None, "--kubeconfig", help="Kubeconfig to read (default: <kube_dir>/config)"
    ),
    host: Optional[str] = typer.Option(
        None, "--host", "-H", envvar=["EDGECTL_HOST", "SWITCH_IP"], help="Host used in access URLs"
    ),
    addon: Optional[List[str]] = typer.Option(None, "--addon", "-a", help="Installed add-ons to show hints for"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to settings YAML"),
):
    """Show nodes, pods and access hints of an existing cluster."""
    with exit_on_error(ctx):
        settings = load_settings(ctx, config_path)
        path = kubeconfig or Path(settings.kube_dir).expanduser() / "config"
        cluster = ClusterClient(path)
        summary = report(cluster, str(path), host or "<host>", addon or ())

    typer.echo(summary.render())
    for warning in summary.warnings:
        typer.echo(f"⚠️ {warning}")
