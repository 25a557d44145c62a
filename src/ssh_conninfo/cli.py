"""Command-line interface for ssh-conninfo."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from .config import AppConfig, load_config
from .interaction import CLIChallengeHandler
from .ssh import (
    ConnectionConfigError,
    ConnectionDescriptor,
    Credential,
    KeySource,
    ProxySettings,
    SSHConnectionError,
    SSHSession,
    Target,
    build_key_connection,
    build_password_connection,
)
from .utils.logging import get_logger
from .utils.secret import SecretString

logger = logging.getLogger(__name__)


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: AppConfig


def _add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", help="Target server host")
    parser.add_argument("--port", type=int, default=None, help="SSH port")
    parser.add_argument("--user", help="SSH username")
    parser.add_argument("--password", default=None, help="SSH password")
    key_group = parser.add_mutually_exclusive_group()
    key_group.add_argument("--key-file", default=None, help="Path to an OpenSSH private key")
    key_group.add_argument(
        "--key-stdin", action="store_true",
        help="Read the private key content from standard input",
    )
    parser.add_argument("--passphrase", default=None, help="Passphrase for the private key")
    parser.add_argument(
        "--combined", action="store_true", default=None,
        help="Present the password before the key (servers requiring both)",
    )
    parser.add_argument("--proxy-host", default=None, help="Proxy server to tunnel through")
    parser.add_argument(
        "--proxy-type", default=None,
        help="Proxy type: HTTP, Socks4 or Socks5 (unknown values fall back to HTTP)",
    )
    parser.add_argument("--proxy-port", type=int, default=None, help="Proxy port")
    parser.add_argument("--proxy-user", default=None, help="Proxy username")
    parser.add_argument("--proxy-password", default=None, help="Proxy password")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ssh-conninfo",
        description="Resolve SSH authentication and proxy settings into a connection descriptor.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")

    subparsers = parser.add_subparsers(dest="command", required=True)
    describe_parser = subparsers.add_parser(
        "describe", help="Print the connection descriptor as JSON (no network access)"
    )
    _add_connection_arguments(describe_parser)

    run_parser = subparsers.add_parser("run", help="Connect and run a command on the server")
    _add_connection_arguments(run_parser)
    run_parser.add_argument("--timeout", type=float, default=None, help="Command timeout in seconds")
    run_parser.add_argument("remote_command", nargs=argparse.REMAINDER, help="Command to run")

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level.upper()
    get_logger(level=config.logging.level)
    return CLIContext(config=config)


def _pick(value, default):
    return value if value is not None else default


def build_descriptor(
    args: argparse.Namespace, context: CLIContext, stdin: Optional[TextIO] = None
) -> ConnectionDescriptor:
    """Combine CLI arguments with configured defaults and run the matching builder."""
    conn = context.config.connection
    proxy_defaults = context.config.proxy

    host = _pick(args.host, conn.host)
    port = _pick(args.port, conn.port)
    username = _pick(args.user, conn.username)
    password = _pick(args.password, conn.password)
    key_path = _pick(args.key_file, conn.key_path)
    passphrase = _pick(args.passphrase, conn.passphrase)
    combined = _pick(args.combined, conn.combined_auth)

    missing = []
    if not host:
        missing.append("host")
    if not username:
        missing.append("user")
    if missing:
        raise ValueError("Missing SSH connection values: " + ", ".join(missing))

    target = Target(host, port)
    credential = Credential.from_plain(username, password)

    proxy_host = _pick(args.proxy_host, proxy_defaults.host)
    proxy = None
    if proxy_host:
        proxy_user = _pick(args.proxy_user, proxy_defaults.username)
        proxy_credential = None
        if proxy_user:
            proxy_credential = Credential.from_plain(
                proxy_user, _pick(args.proxy_password, proxy_defaults.password)
            )
        proxy = ProxySettings(
            host=proxy_host,
            proxy_type=_pick(args.proxy_type, proxy_defaults.type),
            port=_pick(args.proxy_port, proxy_defaults.port),
            credential=proxy_credential,
        )

    if args.key_stdin:
        key_source: Optional[KeySource] = KeySource.from_lines((stdin or sys.stdin).read().splitlines())
    elif key_path:
        key_source = KeySource.from_path(key_path)
    else:
        key_source = None

    if key_source is not None:
        return build_key_connection(
            target,
            key_source,
            credential,
            passphrase=SecretString(passphrase) if passphrase else None,
            proxy=proxy,
            combined_auth=bool(combined),
        )
    return build_password_connection(target, credential, CLIChallengeHandler(), proxy=proxy)


def handle_describe_command(args: argparse.Namespace, context: CLIContext) -> int:
    descriptor = build_descriptor(args, context)
    print(json.dumps(descriptor.to_dict(), indent=2))
    return 0


def handle_run_command(args: argparse.Namespace, context: CLIContext) -> int:
    parts = list(args.remote_command)
    if parts and parts[0] == "--":
        parts = parts[1:]
    command = " ".join(parts).strip()
    if not command:
        raise ValueError("No remote command given")

    descriptor = build_descriptor(args, context)
    session = SSHSession(
        descriptor,
        timeout=context.config.connection.timeout,
        proxy_command_template=context.config.proxy.command_template,
    )
    with session:
        result = session.run(command, timeout=args.timeout)
    if result.stdout:
        print(result.stdout)
    if result.stderr:
        print(result.stderr, file=sys.stderr)
    return result.exit_status if result.exit_status >= 0 else 1


def dispatch_command(args: argparse.Namespace) -> int:
    try:
        context = _build_context(args)
        if args.command == "describe":
            return handle_describe_command(args, context)
        if args.command == "run":
            return handle_run_command(args, context)
    except (ConnectionConfigError, SSHConnectionError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return dispatch_command(args)
