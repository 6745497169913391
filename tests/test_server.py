import os
import socket
import threading

import pytest

from myrpc.client import SocketType, build_request
from myrpc.server import (
    BUFFER_SIZE,
    MAX_USERS,
    CommandServer,
    ConfigError,
    Request,
    RequestFormatError,
    ServerConfig,
    build_response,
    execute_command,
    is_user_allowed,
    load_users,
    parse_config,
    parse_request,
)


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_parse_config_reads_port_and_dgram(tmp_path):
    path = _write(tmp_path, "myRPC.conf", "# comment\n\nport = 1234\nsocket_type = dgram\n")
    config = parse_config(path)
    assert config == ServerConfig(port=1234, socket_type=SocketType.DGRAM)


def test_parse_config_defaults_and_unknown_values(tmp_path):
    path = _write(tmp_path, "myRPC.conf", "socket_type = bogus\nother = 5\n")
    config = parse_config(path)
    assert config.port == 0
    assert config.socket_type is SocketType.STREAM


def test_parse_config_requires_spaced_equals_before_value(tmp_path):
    path = _write(tmp_path, "myRPC.conf", "port= 99\nport =77\n")
    assert parse_config(path).port == 77


def test_parse_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Cannot open config file"):
        parse_config(str(tmp_path / "absent.conf"))


def test_load_users_skips_comments_and_blank_lines(tmp_path):
    path = _write(tmp_path, "client.conf", "# users\nalice\n\nbob\ncarol")
    assert load_users(path) == ["alice", "bob", "carol"]


def test_load_users_limits_count(tmp_path):
    names = [f"user{n}" for n in range(MAX_USERS + 5)]
    path = _write(tmp_path, "client.conf", "\n".join(names) + "\n")
    users = load_users(path)
    assert users == names[:MAX_USERS]


def test_load_users_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Cannot open users file"):
        load_users(str(tmp_path / "absent.conf"))


def test_is_user_allowed():
    users = ["alice", "bob"]
    assert is_user_allowed(users, "bob") is True
    assert is_user_allowed(users, "bo") is False


def test_execute_command_success():
    status, output = execute_command("echo hello")
    assert status == 0
    assert output == "hello\n"


def test_execute_command_failure_status():
    status, output = execute_command("exit 3")
    assert os.waitstatus_to_exitcode(status) == 3
    assert output == ""


def test_execute_command_truncates_output():
    status, output = execute_command("printf abcdefghij", 5)
    assert output == "abcd"
    assert len(output) == 4


def test_parse_request_round_trip_with_client_format():
    data = build_request("alice", "ls -l").decode()
    assert parse_request(data) == Request("alice", "ls -l")


@pytest.mark.parametrize(
    "text",
    ['{"login":"alice"}', '{"command":"ls"}', '{"login":"alice,"command":"ls}', ""],
)
def test_parse_request_invalid(text):
    with pytest.raises(RequestFormatError):
        parse_request(text)


def test_build_response_matches_source_format():
    assert build_response(1, "Invalid request format") == (
        b'{"code":1,"result":"Invalid request format"}'
    )
    assert build_response(1, "Unauthorized user") == b'{"code":1,"result":"Unauthorized user"}'


def test_build_response_is_truncated():
    response = build_response(0, "x" * (BUFFER_SIZE * 2))
    assert len(response) == BUFFER_SIZE - 1
    assert response.startswith(b'{"code":0,"result":"xxx')


def test_handle_request_runs_allowed_command():
    server = CommandServer(ServerConfig(), ["alice"])
    reply = server.handle_request(build_request("alice", "echo hi"))
    assert reply == build_response(0, "hi\n")


def test_handle_request_failing_command_gives_code_one():
    server = CommandServer(ServerConfig(), ["alice"])
    reply = server.handle_request(build_request("alice", "false"))
    assert reply == build_response(1, "")


def test_handle_request_unauthorized():
    server = CommandServer(ServerConfig(), ["alice"])
    reply = server.handle_request(build_request("mallory", "echo hi"))
    assert reply == b'{"code":1,"result":"Unauthorized user"}'


def test_handle_request_invalid_format():
    server = CommandServer(ServerConfig(), ["alice"])
    reply = server.handle_request(b"garbage")
    assert reply == b'{"code":1,"result":"Invalid request format"}'


def test_serve_once_requires_bind():
    server = CommandServer(ServerConfig(), [])
    with pytest.raises(RuntimeError):
        server.serve_once()


def test_serve_once_over_tcp():
    with CommandServer(ServerConfig(port=0), ["alice"]) as server:
        server.bind()
        port = server.address[1]
        worker = threading.Thread(target=server.serve_once)
        worker.start()
        with socket.create_connection(("127.0.0.1", port), timeout=10) as sock:
            sock.sendall(build_request("alice", "echo tcp"))
            reply = sock.recv(BUFFER_SIZE)
        worker.join(timeout=10)
    assert reply == build_response(0, "tcp\n")


def test_serve_once_over_udp():
    config = ServerConfig(port=0, socket_type=SocketType.DGRAM)
    with CommandServer(config, ["alice"]) as server:
        server.bind()
        port = server.address[1]
        worker = threading.Thread(target=server.serve_once)
        worker.start()
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(10)
            sock.sendto(build_request("bob", "echo udp"), ("127.0.0.1", port))
            reply, _ = sock.recvfrom(BUFFER_SIZE)
        worker.join(timeout=10)
    assert reply == b'{"code":1,"result":"Unauthorized user"}'


def test_close_releases_socket():
    server = CommandServer(ServerConfig(port=0), [])
    server.bind()
    bound_port = server.address[1]
    assert bound_port > 0
    server.close()
    with pytest.raises(RuntimeError):
        _ = server.address
    with pytest.raises(RuntimeError):
        server.serve_once()