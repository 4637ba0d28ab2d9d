from pathlib import Path
from typing import Optional

import typer

from edgectl.commands import exit_on_error, load_settings
from edgectl.modules.credentials import resolve_credential, resolve_host
from edgectl.modules.probe import Prober, ProbeResult
from edgectl.modules.ssh import RemoteChannel


def probe(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", "-H", envvar=["EDGECTL_HOST", "SWITCH_IP"], help="Target host address"),
    user: Optional[str] = typer.Option(None, "--user", "-u", envvar=["EDGECTL_USER", "SWITCH_USER"], help="SSH username"),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", envvar=["EDGECTL_PASSWORD", "SWITCH_PASS"], help="SSH password", show_default=False
    ),
    key: Optional[str] = typer.Option(None, "--key", "-k", envvar="EDGECTL_SSH_KEY", help="SSH private key file"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to settings YAML"),
):
    """Check that the target host answers ping and accepts the SSH login."""
    with exit_on_error(ctx):
        settings = load_settings(ctx, config_path)
        target = resolve_host(host)
        credential = resolve_credential(user, password, key)
        channel = RemoteChannel(
            target, credential, port=settings.ssh.port, connect_timeout=settings.ssh.connect_timeout
        )
        result = Prober(channel).probe(target)

    typer.echo(f"{target}: {result.value}")
    if result != ProbeResult.OK:
        raise typer.Exit(code=1)
