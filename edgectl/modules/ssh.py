"""
Remote command execution over SSH using paramiko.

Every command opens its own authenticated session and closes it afterwards.
Runs are short and issue only tens of commands, so nothing is pooled.
"""
import logging
import shlex
import socket
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

import paramiko
from paramiko.ssh_exception import (
    AuthenticationException,
    NoValidConnectionsError,
    SSHException,
)

from edgectl.config import Credential
from edgectl.errors import CommandTimeout, TransportError
from edgectl.logging import redact

logger = logging.getLogger("edgectl.ssh")

KEY_CLASSES = (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one remote command."""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class RemoteChannel:
    """Runs commands on one remote host.

    Non-zero exit codes are returned, not raised: the caller decides whether
    a failure is fatal. Only transport problems and timeouts raise.
    """

    def __init__(
        self,
        host: str,
        credential: Credential,
        port: int = 22,
        connect_timeout: float = 10,
        secrets: Sequence[str] = (),
    ):
        """Initialize the channel.

        Args:
            host: Remote host to connect to
            credential: Username and password and/or private key
            port: SSH port (default: 22)
            connect_timeout: TCP/auth handshake timeout in seconds
            secrets: Extra strings to redact from logged commands
        """
        self.host = host
        self.credential = credential
        self.port = port
        self.connect_timeout = connect_timeout
        self._secrets: List[str] = [s for s in secrets if s]
        if credential.secret:
            self._secrets.append(credential.secret)

    def __repr__(self) -> str:
        return f"RemoteChannel({self.credential.username}@{self.host}:{self.port})"

    def _load_key(self) -> Optional[paramiko.PKey]:
        if not self.credential.key_path:
            return None
        for key_cls in KEY_CLASSES:
            try:
                return key_cls.from_private_key_file(
                    self.credential.key_path, password=self.credential.secret
                )
            except SSHException:
                continue
            except OSError as e:
                raise TransportError(f"Cannot read SSH key {self.credential.key_path}: {e}") from e
        raise TransportError(f"Unsupported or undecryptable SSH key: {self.credential.key_path}")

    @contextmanager
    def session(self) -> Iterator[paramiko.SSHClient]:
        """Open one authenticated session and always close it."""
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        pkey = self._load_key()
        try:
            client.connect(
                hostname=self.host,
                port=self.port,
                username=self.credential.username,
                password=self.credential.secret if not pkey else None,
                pkey=pkey,
                timeout=self.connect_timeout,
                banner_timeout=self.connect_timeout,
                auth_timeout=self.connect_timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except AuthenticationException as e:
            client.close()
            raise TransportError(
                f"Authentication rejected by {self.credential.username}@{self.host}: {e}"
            ) from e
        except (NoValidConnectionsError, SSHException, socket.error) as e:
            client.close()
            raise TransportError(f"Cannot connect to {self.host}:{self.port}: {e}") from e

        try:
            yield client
        finally:
            client.close()

    def wrap_sudo(self, command: str) -> str:
        """Wrap ``command`` so it runs as root with the password read from stdin."""
        return f"sudo -S -p '' sh -c {shlex.quote(command)}"

    def execute(self, command: str, timeout: float = 30, sudo: bool = False) -> CommandResult:
        """Execute a command on the remote host.

        Args:
            command: Shell command to run
            timeout: Seconds the command may run before CommandTimeout is raised
            sudo: Run through sudo, feeding the password on stdin

        Returns:
            CommandResult with exit code, stdout and stderr

        Raises:
            TransportError: If the host is unreachable or rejects authentication
            CommandTimeout: If the command exceeds ``timeout``
        """
        final_command = self.wrap_sudo(command) if sudo else command
        logger.debug(f"[{self.host}] $ {redact(final_command, self._secrets)} (timeout={timeout}s)")

        with self.session() as client:
            try:
                stdin, stdout, stderr = client.exec_command(final_command, timeout=timeout)
            except SSHException as e:
                raise TransportError(f"Failed to start command on {self.host}: {e}") from e

            if sudo and self.credential.secret:
                stdin.write(self.credential.secret + "\n")
                stdin.flush()
            stdin.channel.shutdown_write()

            channel = stdout.channel
            output_buffer: List[bytes] = []
            error_buffer: List[bytes] = []
            deadline = time.monotonic() + timeout

            while not channel.exit_status_ready():
                if time.monotonic() > deadline:
                    channel.close()
                    raise CommandTimeout(
                        f"Command timed out after {timeout} seconds on {self.host}: "
                        f"{redact(command, self._secrets)}"
                    )
                if channel.recv_ready():
                    output_buffer.append(channel.recv(4096))
                if channel.recv_stderr_ready():
                    error_buffer.append(channel.recv_stderr(4096))
                time.sleep(0.1)

            # Drain whatever arrived after the exit status
            while channel.recv_ready():
                output_buffer.append(channel.recv(4096))
            while channel.recv_stderr_ready():
                error_buffer.append(channel.recv_stderr(4096))

            exit_code = channel.recv_exit_status()

        result = CommandResult(
            exit_code=exit_code,
            stdout=b"".join(output_buffer).decode("utf-8", "replace"),
            stderr=b"".join(error_buffer).decode("utf-8", "replace"),
        )
        log_level = logging.DEBUG if result.ok else logging.INFO
        logger.log(
            log_level,
            f"[{self.host}] exit status {exit_code}"
            + (f": {redact(result.stderr.strip(), self._secrets)}" if result.stderr.strip() else ""),
        )
        return result
