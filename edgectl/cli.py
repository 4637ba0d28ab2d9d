import logging
from typing import Optional

import typer

from edgectl.commands import bootstrap, probe, status
from edgectl.logging import setup_logging

app = typer.Typer(help="edgectl - k3s edge cluster bootstrapper.", no_args_is_help=True)

app.command("bootstrap")(bootstrap.bootstrap)
app.command("probe")(probe.probe)
app.command("status")(status.status)


# Global options callback
@app.callback()
def callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
):
    """edgectl - k3s edge cluster bootstrapper."""
    ctx.obj = {"debug": debug}
    setup_logging(debug, log_file=log_file)
    if debug:
        logging.debug("Debug mode enabled")


def main():
    app()


if __name__ == "__main__":
    main()
