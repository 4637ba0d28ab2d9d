import logging
from pathlib import Path
from typing import List, Optional

import typer

from edgectl.commands import exit_on_error, load_settings, parse_labels
from edgectl.config import DEFAULT_NODE_LABELS, ClusterBootstrapConfig, Topology
from edgectl.modules.credentials import resolve_credential, resolve_host
from edgectl.modules.k3s.orchestrator import Bootstrapper

logger = logging.getLogger("edgectl.cli")


def bootstrap(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(
        None, "--host", "-H", envvar=["EDGECTL_HOST", "SWITCH_IP"], help="Target host address"
    ),
    user: Optional[str] = typer.Option(
        None, "--user", "-u", envvar=["EDGECTL_USER", "SWITCH_USER"], help="SSH username"
    ),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", envvar=["EDGECTL_PASSWORD", "SWITCH_PASS"],
        help="SSH and sudo password", show_default=False,
    ),
    key: Optional[str] = typer.Option(None, "--key", "-k", envvar="EDGECTL_SSH_KEY", help="SSH private key file"),
    version: Optional[str] = typer.Option(
        None, "--version", envvar=["EDGECTL_K3S_VERSION", "K3S_VERSION"], help="k3s release to install"
    ),
    topology: Topology = typer.Option(
        Topology.LOCAL_CONTROL_PLANE, "--topology", "-t", envvar="EDGECTL_TOPOLOGY", help="Cluster layout"
    ),
    addon: Optional[List[str]] = typer.Option(
        None, "--addon", "-a", help="Add-on to install (repeatable); defaults depend on the topology"
    ),
    no_addons: bool = typer.Option(False, "--no-addons", help="Skip all add-ons"),
    label: Optional[List[str]] = typer.Option(None, "--label", "-l", help="Extra node label key=value (repeatable)"),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="EDGECTL_JOIN_TOKEN", help="Cluster join token", show_default=False
    ),
    cluster_name: Optional[str] = typer.Option(None, "--cluster-name", help="Name of the kubeconfig written"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to settings YAML"),
):
    """Bring up k3s on the target host and install add-ons."""
    labels = dict(DEFAULT_NODE_LABELS)
    labels.update(parse_labels(label))

    with exit_on_error(ctx):
        settings = load_settings(ctx, config_path)
        target = resolve_host(host)
        credential = resolve_credential(user, password, key)

        if no_addons:
            addons = ()
        else:
            addons = addon or None

        config = ClusterBootstrapConfig.build(
            settings,
            target_host=target,
            credential=credential,
            topology=topology,
            version=version,
            join_token=token,
            cluster_name=cluster_name,
            addons=addons,
            node_labels=labels,
        )

        bootstrapper = Bootstrapper(config)
        summary = bootstrapper.run()

    typer.echo(summary.render())
    warnings = bootstrapper.state.warnings
    if warnings:
        typer.echo("")
        typer.echo(f"⚠️ {len(warnings)} warning(s):")
        for warning in warnings:
            typer.echo(f"  - {warning}")
