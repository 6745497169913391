"""Server that runs shell commands on behalf of allowed users."""

from __future__ import annotations

import re
import socket
import subprocess
import sys
from dataclasses import dataclass, field

from myrpc.client import SocketType
from myrpc.syslogger import log_error, log_info

BUFFER_SIZE = 2048
MAX_USERS = 100
CONFIG_DIR = "/etc/myRPC"
CONFIG_FILE = f"{CONFIG_DIR}/myRPC.conf"
USERS_FILE = f"{CONFIG_DIR}/client.conf"

_GREEN = "\x1b[32m"
_YELLOW = "\x1b[33m"
_RED = "\x1b[31m"
_RESET = "\x1b[0m"

_ATOI_RE = re.compile(r"\s*([+-]?\d+)")

INVALID_FORMAT = "Invalid request format"
UNAUTHORIZED = "Unauthorized user"


def _info(message: str) -> None:
    print(f"{_GREEN}[INFO] {message}{_RESET}")
    log_info(message)


def _warn(message: str) -> None:
    print(f"{_YELLOW}[WARN] {message}{_RESET}")
    log_info(message)


def _error(message: str) -> None:
    print(f"{_RED}[ERROR] {message}{_RESET}", file=sys.stderr)
    log_error(message)


def _atoi(text: str) -> int:
    match = _ATOI_RE.match(text)
    return int(match.group(1)) if match else 0


class ConfigError(Exception):
    """Raised when a configuration file cannot be read."""


class RequestFormatError(ValueError):
    """Raised when a request lacks a login or a command."""


@dataclass
class ServerConfig:
    """Port and transport the server listens on."""

    port: int = 0
    socket_type: SocketType = SocketType.STREAM


@dataclass(frozen=True)
class Request:
    """A parsed client request."""

    login: str
    command: str


def _parse_setting(line: str) -> tuple[str, str] | None:
    """Split a ``key = value`` line; both sides are single words."""
    parts = line.split(None, 1)
    if len(parts) < 2:
        return None
    key, rest = parts
    rest = rest.lstrip()
    if not rest.startswith("="):
        return None
    values = rest[1:].split()
    if not values:
        return None
    return key, values[0]


def parse_config(path: str = CONFIG_FILE) -> ServerConfig:
    """Read the server configuration from ``path``.

    Recognised keys are ``port`` and ``socket_type`` (``stream`` or ``dgram``);
    anything else is ignored.
    """
    config = ServerConfig()
    try:
        with open(path, encoding="utf-8", errors="replace") as file:
            lines = list(file)
    except OSError as exc:
        raise ConfigError(f"Cannot open config file {path}: {exc.strerror}") from exc

    for line in lines:
        if line.startswith(("#", "\n")):
            continue
        setting = _parse_setting(line)
        if setting is None:
            continue
        key, value = setting
        if key == "port":
            config.port = _atoi(value)
        elif key == "socket_type":
            if value == "stream":
                config.socket_type = SocketType.STREAM
            elif value == "dgram":
                config.socket_type = SocketType.DGRAM
    return config


def load_users(path: str = USERS_FILE) -> list[str]:
    """Read up to ``MAX_USERS`` allowed user names, one per line."""
    try:
        with open(path, encoding="utf-8", errors="replace") as file:
            lines = list(file)
    except OSError as exc:
        raise ConfigError(f"Cannot open users file {path}: {exc.strerror}") from exc

    users: list[str] = []
    for line in lines:
        if len(users) >= MAX_USERS:
            break
        if line.startswith(("#", "\n")):
            continue
        users.append(line.split("\n", 1)[0])
    return users


def is_user_allowed(users: list[str], username: str) -> bool:
    """Tell whether ``username`` is in the allowed list."""
    return username in users


def _wait_status(returncode: int) -> int:
    if returncode < 0:
        return -returncode
    return returncode << 8


def execute_command(command: str, output_size: int = BUFFER_SIZE) -> tuple[int, str]:
    """Run ``command`` through the shell.

    Returns the raw wait status and at most ``output_size - 1`` bytes of its
    standard output. A command that cannot be started gives status -1.
    """
    try:
        proc = subprocess.Popen(command, shell=True, stdout=subprocess.PIPE)
    except OSError as exc:
        _error(f"Command execution failed: {exc.strerror}")
        return -1, ""

    assert proc.stdout is not None
    with proc.stdout:
        data = proc.stdout.read(max(output_size - 1, 0))
    returncode = proc.wait()
    return _wait_status(returncode), data.decode(errors="replace")


def parse_request(text: str) -> Request:
    """Pull the login and command out of a simplified JSON request."""
    login_key = '"login":"'
    command_key = '"command":"'
    login_pos = text.find(login_key)
    command_pos = text.find(command_key)
    if login_pos < 0 or command_pos < 0:
        raise RequestFormatError(INVALID_FORMAT)

    login_start = login_pos + len(login_key)
    command_start = command_pos + len(command_key)
    login_end = text.find('"', login_start)
    command_end = text.find('"', command_start)
    if login_end < 0 or command_end < 0:
        raise RequestFormatError(INVALID_FORMAT)

    return Request(text[login_start:login_end], text[command_start:command_end])


def build_response(code: int, result: str) -> bytes:
    """Build the JSON reply, cut to fit the response buffer."""
    text = f'{{"code":{code},"result":"{result}"}}'
    return text.encode()[: BUFFER_SIZE - 1]


@dataclass
class CommandServer:
    """Accepts requests and runs the commands of allowed users."""

    config: ServerConfig
    users: list[str]
    _sock: socket.socket | None = field(default=None, init=False, repr=False)

    def __init__(self, config: ServerConfig, users: list[str]) -> None:
        self.config = config
        self.users = list(users)
        self._sock = None

    def __enter__(self) -> CommandServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_stream(self) -> bool:
        return self.config.socket_type is SocketType.STREAM

    @property
    def address(self) -> tuple[str, int]:
        """The local address the server is bound to."""
        if self._sock is None:
            raise RuntimeError("server is not bound")
        return self._sock.getsockname()

    def handle_request(self, data: bytes) -> bytes:
        """Process one raw request and return the reply to send."""
        text = data.split(b"\0", 1)[0].decode(errors="replace")
        _info(f"Received request: {text}")

        try:
            request = parse_request(text)
        except RequestFormatError:
            _warn(INVALID_FORMAT)
            return build_response(1, INVALID_FORMAT)

        _info(f"Processing command from user '{request.login}': {request.command}")

        if not is_user_allowed(self.users, request.login):
            _warn(f"Unauthorized user: {request.login}")
            return build_response(1, UNAUTHORIZED)

        status, output = execute_command(request.command, BUFFER_SIZE)
        _info(f"Command executed with status: {status}")
        return build_response(0 if status == 0 else 1, output)

    def bind(self) -> None:
        """Create the socket and bind it to the configured port."""
        kind = "TCP" if self.is_stream else "UDP"
        _info(f"Creating {kind} socket...")
        try:
            sock = socket.socket(socket.AF_INET, self.config.socket_type.value)
        except OSError as exc:
            _error(f"Socket creation failed: {exc.strerror}")
            raise

        try:
            sock.bind(("", self.config.port & 0xFFFF))
        except OSError as exc:
            _error(f"Bind failed: {exc.strerror}")
            sock.close()
            raise

        if self.is_stream:
            try:
                sock.listen(5)
            except OSError as exc:
                _error(f"Listen failed: {exc.strerror}")
                sock.close()
                raise

        self._sock = sock

    def serve_once(self) -> None:
        """Handle a single connection or datagram."""
        if self._sock is None:
            raise RuntimeError("server is not bound")
        if self.is_stream:
            self._serve_stream(self._sock)
        else:
            self._serve_dgram(self._sock)

    def _serve_stream(self, sock: socket.socket) -> None:
        try:
            conn, (client_ip, _) = sock.accept()
        except OSError as exc:
            _error(f"Accept failed: {exc.strerror}")
            return

        with conn:
            _info(f"New connection from {client_ip}")
            try:
                data = conn.recv(BUFFER_SIZE - 1)
            except OSError as exc:
                _error(f"Receive failed: {exc.strerror}")
                return
            response = self.handle_request(data)
            try:
                conn.send(response)
            except OSError as exc:
                _error(f"Send failed: {exc.strerror}")

    def _serve_dgram(self, sock: socket.socket) -> None:
        try:
            data, client = sock.recvfrom(BUFFER_SIZE - 1)
        except OSError as exc:
            _error(f"Receive failed: {exc.strerror}")
            return

        _info(f"New connection from {client[0]}")
        response = self.handle_request(data)
        try:
            sock.sendto(response, client)
        except OSError as exc:
            _error(f"Send failed: {exc.strerror}")

    def serve_forever(self) -> None:
        """Handle requests until interrupted."""
        while True:
            self.serve_once()

    def close(self) -> None:
        """Close the listening socket."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None


def main(argv: list[str] | None = None) -> int:
    """Run the server from the files in ``/etc/myRPC``; return the exit status.

    The server takes no command-line options; ``argv`` is accepted and ignored.
    """
    _info("=== Starting myRPC-server ===")

    try:
        config = parse_config(CONFIG_FILE)
    except ConfigError as exc:
        _error(str(exc))
        _error("Failed to load configuration")
        return 1
    _info("Server configuration loaded")
    kind = "TCP" if config.socket_type is SocketType.STREAM else "UDP"
    _info(f"Port: {config.port}, Socket type: {kind}")

    try:
        users = load_users(USERS_FILE)
    except ConfigError as exc:
        _error(str(exc))
        _error("Failed to load users list")
        return 1
    _info(f"Loaded {len(users)} allowed users")

    with CommandServer(config, users) as server:
        try:
            server.bind()
        except OSError:
            return 1
        _info(f"Server started successfully on port {config.port}")
        _info("Waiting for connections...")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0