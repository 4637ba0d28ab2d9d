"""Interactive completion of remote login details.

Called once by the CLI, before any bootstrap work starts.
"""
import logging
from typing import Callable, Optional

import typer

from edgectl.config import Credential

logger = logging.getLogger("edgectl.credentials")


def resolve_host(host: Optional[str], prompt: Callable[..., str] = typer.prompt) -> str:
    return host or prompt("🎮 Target host IP address")


def resolve_credential(
    username: Optional[str],
    password: Optional[str],
    key_path: Optional[str],
    prompt: Callable[..., str] = typer.prompt,
) -> Credential:
    """Build a Credential, prompting only for values still missing.

    A password is prompted for even when a key is given, because ``sudo``
    on the target needs it. An empty answer is accepted in that case.
    """
    if not username:
        username = prompt("👤 SSH username")
    if password is None:
        if key_path:
            password = prompt("🔑 Password for sudo (leave empty if not needed)", hide_input=True, default="",
                              show_default=False) or None
        else:
            password = prompt("🔑 SSH password", hide_input=True)
    return Credential(username=username, password=password, key_path=key_path)
