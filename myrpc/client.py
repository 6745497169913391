"""Command-line client that sends a shell command to a myRPC server."""

from __future__ import annotations

import enum
import os
import pwd
import re
import socket
import sys
from dataclasses import dataclass

from myrpc.syslogger import log_error

BUFFER_SIZE = 1024

_ATOI_RE = re.compile(r"\s*([+-]?\d+)")


class SocketType(enum.Enum):
    """Transport used to reach the server."""

    STREAM = socket.SOCK_STREAM
    DGRAM = socket.SOCK_DGRAM


class ClientError(Exception):
    """Raised when the client cannot complete a request."""


@dataclass
class ClientOptions:
    """Options taken from the command line."""

    host: str | None = None
    port: int = 0
    socket_type: SocketType = SocketType.STREAM
    command: str | None = None
    show_help: bool = False


def help_text() -> str:
    """Return the usage message."""
    return "\n".join(
        [
            'Usage: myRPC-client -h <host> -p <port> [-s | -d] -c "<command>"',
            "Options:",
            "  -h, --host      Server IP address",
            "  -p, --port      Server port",
            "  -s, --stream    Use stream socket (TCP)",
            "  -d, --dgram     Use datagram socket (UDP)",
            "  -c, --command   Bash command to execute",
            "  --help          Show this help message",
        ]
    )


def _atoi(text: str) -> int:
    match = _ATOI_RE.match(text)
    return int(match.group(1)) if match else 0


def parse_args(argv: list[str]) -> ClientOptions:
    """Parse command-line arguments (without the program name).

    Unknown arguments are ignored. ``--help`` stops parsing at once.
    Raises ClientError when host, a non-zero port or the command is missing.
    """
    options = ClientOptions()
    args = iter(argv)
    for arg in args:
        if arg in ("-h", "--host"):
            options.host = next(args, options.host)
        elif arg in ("-p", "--port"):
            value = next(args, None)
            if value is not None:
                options.port = _atoi(value)
        elif arg in ("-s", "--stream"):
            options.socket_type = SocketType.STREAM
        elif arg in ("-d", "--dgram"):
            options.socket_type = SocketType.DGRAM
        elif arg in ("-c", "--command"):
            options.command = next(args, options.command)
        elif arg == "--help":
            options.show_help = True
            return options

    if not options.host or options.port == 0 or not options.command:
        raise ClientError("Missing required arguments")
    return options


def current_username() -> str:
    """Return the name of the user running the process, or ``unknown``."""
    try:
        return pwd.getpwuid(os.getuid()).pw_name
    except KeyError:
        return "unknown"


def build_request(login: str, command: str) -> bytes:
    """Build the JSON request, cut to fit the request buffer."""
    text = f'{{"login":"{login}","command":"{command}"}}'
    return text.encode()[: BUFFER_SIZE - 1]


def send_request(host: str, port: int, socket_type: SocketType, request: bytes) -> str:
    """Send ``request`` to the server and return its reply."""
    try:
        sock = socket.socket(socket.AF_INET, socket_type.value)
    except OSError as exc:
        raise ClientError("Failed to create socket") from exc

    with sock:
        try:
            socket.inet_pton(socket.AF_INET, host)
        except OSError as exc:
            raise ClientError("Invalid address") from exc

        try:
            sock.connect((host, port & 0xFFFF))
        except OSError as exc:
            raise ClientError("Connection failed") from exc

        try:
            sock.send(request)
        except OSError as exc:
            raise ClientError("Failed to send request") from exc

        try:
            response = sock.recv(BUFFER_SIZE - 1)
        except OSError as exc:
            raise ClientError("Failed to receive response") from exc

    return response.decode(errors="replace")


def main(argv: list[str] | None = None) -> int:
    """Run the client; return the process exit status."""
    if argv is None:
        argv = sys.argv[1:]

    try:
        options = parse_args(argv)
    except ClientError as exc:
        log_error(str(exc))
        print(help_text())
        return 1

    if options.show_help:
        print(help_text())
        return 0

    request = build_request(current_username(), options.command)
    try:
        response = send_request(options.host, options.port, options.socket_type, request)
    except ClientError as exc:
        log_error(str(exc))
        return 1

    print(f"Server response: {response}")
    return 0