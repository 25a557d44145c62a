"""SSH session management built on Paramiko."""

from __future__ import annotations

import logging
import shlex
import socket
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import paramiko

from .descriptor import ConnectionDescriptor, key_fingerprint
from .proxy import ProxyConfig, ProxyKind

logger = logging.getLogger(__name__)

# netcat (OpenBSD flavour) understands -X connect|4|5 and -x proxy:port.
DEFAULT_PROXY_COMMAND = "nc -X {mode} -x {proxy_host}:{proxy_port} {host} {port}"

_NC_MODES = {
    ProxyKind.HTTP: "connect",
    ProxyKind.SOCKS4: "4",
    ProxyKind.SOCKS5: "5",
}

Connector = Callable[[ConnectionDescriptor], Any]

READ_SIZE = 4096
POLL_INTERVAL = 0.05


class SSHConnectionError(RuntimeError):
    """Raised when an SSH connection cannot be established."""

    pass


class SSHAuthenticationError(SSHConnectionError):
    """Raised when every authentication method was rejected."""

    def __init__(self, message: str, attempts: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.attempts = attempts or []


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


def build_proxy_command(
    descriptor: ConnectionDescriptor, template: str = DEFAULT_PROXY_COMMAND
) -> str:
    """Render the proxy command line for a proxied descriptor."""
    proxy = descriptor.proxy
    if proxy is None:
        raise ValueError("descriptor has no proxy")
    command = template.format(
        mode=_NC_MODES[proxy.kind],
        proxy_host=shlex.quote(proxy.host),
        proxy_port=proxy.port,
        host=shlex.quote(descriptor.target.host),
        port=descriptor.target.port,
    )
    return _with_proxy_user(command, proxy)


def _with_proxy_user(command: str, proxy: ProxyConfig) -> str:
    # nc only supports proxy authentication for HTTP CONNECT, and takes no password.
    if proxy.kind is ProxyKind.HTTP and proxy.username and command.startswith("nc "):
        return f"nc -P {shlex.quote(proxy.username)} {command[3:]}"
    return command


def _discard(transport: Optional[paramiko.Transport], sock: Any) -> None:
    # The transport owns the socket once it exists.
    if transport is not None:
        transport.close()
    elif hasattr(sock, "close"):
        sock.close()


class SSHSession:
    """Opens a transport for a connection descriptor and runs commands on it."""

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        *,
        timeout: float = 20,
        transport_factory: Callable[[Any], paramiko.Transport] | None = None,
        connector: Connector | None = None,
        proxy_command_template: str = DEFAULT_PROXY_COMMAND,
    ) -> None:
        self.descriptor = descriptor
        self.timeout = timeout
        self._transport_factory = transport_factory or paramiko.Transport
        self._connector = connector
        self._proxy_command_template = proxy_command_template
        self._transport: Optional[paramiko.Transport] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def connected(self) -> bool:
        return self._transport is not None

    def _open_socket(self) -> Any:
        if self._connector is not None:
            return self._connector(self.descriptor)
        target = self.descriptor.target
        if self.descriptor.proxy is not None:
            command = build_proxy_command(self.descriptor, self._proxy_command_template)
            logger.info("Connecting to %s via %s proxy %s:%s",
                        target, self.descriptor.proxy.kind.value,
                        self.descriptor.proxy.host, self.descriptor.proxy.port)
            return paramiko.ProxyCommand(command)
        logger.info("Connecting to %s", target)
        return socket.create_connection((target.host, target.port), timeout=self.timeout)

    def connect(self) -> None:
        if self._transport:
            return
        try:
            sock = self._open_socket()
        except OSError as exc:
            raise SSHConnectionError(f"Cannot reach {self.descriptor.target}: {exc}") from exc

        transport = None
        try:
            transport = self._transport_factory(sock)
            transport.start_client(timeout=self.timeout)
            server_key = transport.get_remote_server_key()
            logger.debug("Server host key %s %s", server_key.get_name(), key_fingerprint(server_key))
            self._authenticate(transport)
        except SSHConnectionError:
            _discard(transport, sock)
            raise
        except (paramiko.SSHException, OSError) as exc:
            _discard(transport, sock)
            raise SSHConnectionError(str(exc)) from exc
        self._transport = transport

    def _authenticate(self, transport: paramiko.Transport) -> None:
        attempts: List[str] = []
        for method in self.descriptor.auth_methods:
            try:
                remaining = method.authenticate(transport)
            except paramiko.BadAuthenticationType as exc:
                logger.info("Server does not accept %s, allowed: %s", method.kind.value, exc.allowed_types)
                attempts.append(f"{method.kind.value}: not allowed")
                continue
            except paramiko.AuthenticationException as exc:
                logger.info("%s authentication failed for %s", method.kind.value, method.username)
                attempts.append(f"{method.kind.value}: {exc}")
                continue
            if transport.is_authenticated():
                logger.info("Authenticated to %s as %s using %s",
                            self.descriptor.target, method.username, method.kind.value)
                return
            logger.info("Partial success with %s, server continues with %s", method.kind.value, remaining)
            attempts.append(f"{method.kind.value}: partial")
        raise SSHAuthenticationError(
            f"Authentication to {self.descriptor.target} failed ({'; '.join(attempts) or 'no methods'})",
            attempts,
        )

    def close(self) -> None:
        if self._transport:
            self._transport.close()
            self._transport = None

    def run(self, command: str, *, timeout: Optional[float] = None) -> SSHCommandResult:
        """
        Execute a command on the remote server.

        Args:
            command: The command to execute
            timeout: Seconds to wait for the command (default: session timeout)

        Returns:
            SSHCommandResult with command output and exit status
        """
        if not self._transport:
            self.connect()
        assert self._transport is not None

        limit = float(timeout if timeout is not None else self.timeout)
        try:
            channel = self._transport.open_session(timeout=self.timeout)
        except paramiko.SSHException as exc:
            raise SSHConnectionError(f"Cannot open a channel to {self.descriptor.target}: {exc}") from exc

        stdout_chunks: List[bytes] = []
        stderr_chunks: List[bytes] = []
        try:
            channel.exec_command(command)
            deadline = time.monotonic() + limit
            # Both streams are drained as they arrive so neither fills the window.
            while True:
                _drain(channel, stdout_chunks, stderr_chunks)
                if channel.exit_status_ready():
                    break
                if time.monotonic() >= deadline:
                    return SSHCommandResult(
                        command=command,
                        stdout=_decode(stdout_chunks).strip(),
                        stderr=f"TIMEOUT: Command did not complete within {limit:g} seconds.",
                        exit_status=-1,
                    )
                time.sleep(POLL_INTERVAL)
            _drain(channel, stdout_chunks, stderr_chunks)
            exit_status = channel.recv_exit_status()
        except paramiko.SSHException as exc:
            raise SSHConnectionError(f"Command failed on {self.descriptor.target}: {exc}") from exc
        finally:
            channel.close()

        return SSHCommandResult(
            command=command,
            stdout=_decode(stdout_chunks).strip(),
            stderr=_decode(stderr_chunks).strip(),
            exit_status=exit_status,
        )


def _drain(channel: Any, stdout_chunks: List[bytes], stderr_chunks: List[bytes]) -> None:
    while channel.recv_ready():
        stdout_chunks.append(channel.recv(READ_SIZE))
    while channel.recv_stderr_ready():
        stderr_chunks.append(channel.recv_stderr(READ_SIZE))


def _decode(chunks: List[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")
