import unittest
from unittest import mock

import paramiko

from ssh_conninfo.interaction import PasswordChallengeHandler
from ssh_conninfo.ssh import (
    ConnectionDescriptor,
    KeyboardInteractiveAuth,
    PasswordAuth,
    PrivateKeyAuth,
    ProxyConfig,
    ProxyKind,
    SSHAuthenticationError,
    SSHConnectionError,
    SSHSession,
    Target,
    Credential,
)
from ssh_conninfo.ssh.session import build_proxy_command
from ssh_conninfo.utils.secret import SecretString


class FakeKey:
    def get_name(self) -> str:
        return "ssh-fake"

    def asbytes(self) -> bytes:
        return b"fake-key"


class FakeChannel:
    """Channel whose exit status only becomes ready once both streams are read."""

    def __init__(self, stdout: bytes = b"ok\n", stderr: bytes = b"", status: int = 0,
                 finishes: bool = True) -> None:
        self._stdout = bytearray(stdout)
        self._stderr = bytearray(stderr)
        self._status = status
        self._finishes = finishes
        self.command = None
        self.closed = False

    def exec_command(self, command: str) -> None:
        self.command = command

    @staticmethod
    def _take(buffer: bytearray, size: int) -> bytes:
        chunk = bytes(buffer[:size])
        del buffer[:size]
        return chunk

    def recv_ready(self) -> bool:
        return bool(self._stdout)

    def recv(self, size: int) -> bytes:
        return self._take(self._stdout, size)

    def recv_stderr_ready(self) -> bool:
        return bool(self._stderr)

    def recv_stderr(self, size: int) -> bytes:
        return self._take(self._stderr, size)

    def exit_status_ready(self) -> bool:
        return self._finishes and not self._stdout and not self._stderr

    def recv_exit_status(self) -> int:
        return self._status

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """Scripted transport: ``outcomes`` maps auth kind to ok/partial/fail/bad."""

    def __init__(self, sock, outcomes=None) -> None:
        self.sock = sock
        self.outcomes = outcomes or {}
        self.calls = []
        self.authenticated = False
        self.closed = False
        self.channel = FakeChannel()

    def start_client(self, timeout=None) -> None:
        self.started = True

    def get_remote_server_key(self):
        return FakeKey()

    def _outcome(self, kind: str):
        outcome = self.outcomes.get(kind, "fail")
        if outcome == "ok":
            self.authenticated = True
            return []
        if outcome == "partial":
            return ["publickey"]
        if outcome == "bad":
            raise paramiko.BadAuthenticationType("Bad authentication type", ["publickey"])
        raise paramiko.AuthenticationException("Authentication failed.")

    def auth_password(self, username, password):
        self.calls.append(("password", username, password))
        return self._outcome("password")

    def auth_publickey(self, username, key):
        self.calls.append(("publickey", username, key))
        return self._outcome("publickey")

    def auth_interactive(self, username, handler, submethods=""):
        answers = handler("", "", [("Password: ", False)])
        self.calls.append(("keyboard-interactive", username, answers))
        return self._outcome("keyboard-interactive")

    def is_authenticated(self) -> bool:
        return self.authenticated

    def open_session(self, timeout=None):
        return self.channel

    def close(self) -> None:
        self.closed = True


def make_session(descriptor, outcomes):
    transports = []

    def factory(sock):
        transport = FakeTransport(sock, outcomes)
        transports.append(transport)
        return transport

    session = SSHSession(descriptor, transport_factory=factory, connector=lambda d: "sock")
    return session, transports


TARGET = Target("host1", 22)


def combined_descriptor() -> ConnectionDescriptor:
    return ConnectionDescriptor(
        target=TARGET,
        username="alice",
        auth_methods=(
            PasswordAuth("alice", SecretString("pw")),
            PrivateKeyAuth("alice", FakeKey()),
        ),
    )


class SSHSessionTests(unittest.TestCase):
    def test_combined_auth_runs_password_then_key(self) -> None:
        session, transports = make_session(
            combined_descriptor(), {"password": "partial", "publickey": "ok"}
        )
        with session:
            self.assertTrue(session.connected)
        transport = transports[0]
        self.assertEqual([call[0] for call in transport.calls], ["password", "publickey"])
        self.assertEqual(transport.calls[0][2], "pw")
        self.assertEqual(transport.sock, "sock")
        self.assertTrue(transport.closed)

    def test_stops_after_first_success(self) -> None:
        session, transports = make_session(combined_descriptor(), {"password": "ok"})
        session.connect()
        self.assertEqual([call[0] for call in transports[0].calls], ["password"])
        session.close()
        self.assertFalse(session.connected)

    def test_falls_through_rejected_methods(self) -> None:
        session, transports = make_session(
            combined_descriptor(), {"password": "bad", "publickey": "ok"}
        )
        session.connect()
        self.assertTrue(session.connected)

    def test_all_methods_failing_raises(self) -> None:
        session, transports = make_session(combined_descriptor(), {})
        with self.assertRaises(SSHAuthenticationError) as ctx:
            session.connect()
        self.assertEqual(len(ctx.exception.attempts), 2)
        self.assertTrue(transports[0].closed)
        self.assertFalse(session.connected)

    def test_keyboard_interactive_uses_handler(self) -> None:
        descriptor = ConnectionDescriptor(
            target=TARGET,
            username="alice",
            auth_methods=(
                PasswordAuth("alice", SecretString("pw")),
                KeyboardInteractiveAuth("alice", PasswordChallengeHandler(SecretString("pw"))),
            ),
        )
        session, transports = make_session(descriptor, {"keyboard-interactive": "ok"})
        session.connect()
        self.assertEqual(transports[0].calls[1], ("keyboard-interactive", "alice", ["pw"]))

    def test_connector_failure_is_connection_error(self) -> None:
        def refuse(descriptor):
            raise ConnectionRefusedError("refused")

        session = SSHSession(combined_descriptor(), connector=refuse)
        with self.assertRaises(SSHConnectionError):
            session.connect()

    def test_run_command(self) -> None:
        session, transports = make_session(combined_descriptor(), {"password": "ok"})
        with session:
            result = session.run("echo test")
        self.assertTrue(result.ok)
        self.assertEqual(result.stdout, "ok")
        self.assertEqual(transports[0].channel.command, "echo test")
        self.assertTrue(transports[0].channel.closed)

    def test_run_drains_large_stderr_alongside_stdout(self) -> None:
        session, transports = make_session(combined_descriptor(), {"password": "ok"})
        session.connect()
        transports[0].channel = FakeChannel(stdout=b"out\n", stderr=b"e" * 100_000, status=3)
        result = session.run("noisy")
        self.assertEqual(result.stdout, "out")
        self.assertEqual(len(result.stderr), 100_000)
        self.assertEqual(result.exit_status, 3)

    def test_run_timeout_returns_partial_output(self) -> None:
        session, transports = make_session(combined_descriptor(), {"password": "ok"})
        session.connect()
        transports[0].channel = FakeChannel(stdout=b"started\n", finishes=False)
        result = session.run("sleep 100", timeout=0)
        self.assertEqual(result.exit_status, -1)
        self.assertEqual(result.stdout, "started")
        self.assertIn("TIMEOUT", result.stderr)
        self.assertTrue(transports[0].channel.closed)

    def test_channel_failure_is_connection_error(self) -> None:
        session, transports = make_session(combined_descriptor(), {"password": "ok"})
        session.connect()

        def refuse_channel(timeout=None):
            raise paramiko.SSHException("Administratively prohibited")

        transports[0].open_session = refuse_channel
        with self.assertRaises(SSHConnectionError):
            session.run("uptime")

    def test_transport_factory_failure_closes_socket(self) -> None:
        sock = FakeSocket()

        def broken_factory(sock):
            raise paramiko.SSHException("boom")

        session = SSHSession(
            combined_descriptor(), transport_factory=broken_factory, connector=lambda d: sock
        )
        with self.assertRaises(SSHConnectionError):
            session.connect()
        self.assertTrue(sock.closed)
        self.assertFalse(session.connected)


class FakeSocket:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class OpenSocketTests(unittest.TestCase):
    def _connect(self, descriptor: ConnectionDescriptor, timeout: float = 20):
        transports = []

        def factory(sock):
            transport = FakeTransport(sock, {"password": "ok"})
            transports.append(transport)
            return transport

        session = SSHSession(descriptor, timeout=timeout, transport_factory=factory)
        session.connect()
        return session, transports[0]

    def test_socks5_descriptor_opens_proxy_command(self) -> None:
        descriptor = ConnectionDescriptor(
            target=TARGET,
            username="alice",
            auth_methods=(PasswordAuth("alice", SecretString("pw")),),
            proxy=ProxyConfig(ProxyKind.SOCKS5, "proxy1", 1080),
        )
        with mock.patch("paramiko.ProxyCommand") as proxy_command, \
                mock.patch("socket.create_connection") as create_connection:
            session, transport = self._connect(descriptor)
        proxy_command.assert_called_once_with("nc -X 5 -x proxy1:1080 host1 22")
        create_connection.assert_not_called()
        self.assertIs(transport.sock, proxy_command.return_value)
        self.assertTrue(session.connected)

    def test_direct_descriptor_connects_to_target(self) -> None:
        with mock.patch("paramiko.ProxyCommand") as proxy_command, \
                mock.patch("socket.create_connection") as create_connection:
            session, transport = self._connect(combined_descriptor(), timeout=7)
        create_connection.assert_called_once_with(("host1", 22), timeout=7)
        proxy_command.assert_not_called()
        self.assertIs(transport.sock, create_connection.return_value)

    def test_unreachable_target_is_connection_error(self) -> None:
        with mock.patch("socket.create_connection", side_effect=ConnectionRefusedError("refused")):
            with self.assertRaises(SSHConnectionError):
                self._connect(combined_descriptor())


class ProxyCommandTests(unittest.TestCase):
    def _descriptor(self, proxy: ProxyConfig) -> ConnectionDescriptor:
        return ConnectionDescriptor(
            target=TARGET,
            username="alice",
            auth_methods=(PasswordAuth("alice", SecretString("pw")),),
            proxy=proxy,
        )

    def test_socks5(self) -> None:
        descriptor = self._descriptor(ProxyConfig(ProxyKind.SOCKS5, "proxy1", 1080))
        self.assertEqual(build_proxy_command(descriptor), "nc -X 5 -x proxy1:1080 host1 22")

    def test_socks4(self) -> None:
        descriptor = self._descriptor(ProxyConfig(ProxyKind.SOCKS4, "proxy1", 1080))
        self.assertEqual(build_proxy_command(descriptor), "nc -X 4 -x proxy1:1080 host1 22")

    def test_http_with_proxy_user(self) -> None:
        descriptor = self._descriptor(
            ProxyConfig(ProxyKind.HTTP, "proxy1", 3128, Credential.from_plain("bob", "x"))
        )
        self.assertEqual(
            build_proxy_command(descriptor), "nc -P bob -X connect -x proxy1:3128 host1 22"
        )

    def test_direct_descriptor_has_no_proxy_command(self) -> None:
        with self.assertRaises(ValueError):
            build_proxy_command(combined_descriptor())


if __name__ == "__main__":
    unittest.main()
