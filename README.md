# myrpc

A small remote command service. A server runs shell commands on behalf of an
allowed list of users, and a client sends those commands over TCP or UDP.
Both sides log to the system log under the `myRPC` identifier. The package
needs a POSIX system: it uses the `syslog` and `pwd` modules.

## Installation

```
pip install .
```

## Server

The `myRPC-server` command takes no options. It reads its settings from
`/etc/myRPC/myRPC.conf`:

```
# port to listen on
port = 5000
# stream (TCP) or dgram (UDP)
socket_type = stream
```

Only the keys `port` and `socket_type` (`stream` or `dgram`) are recognised;
other lines, lines beginning with `#` and empty lines are ignored. Without a
`socket_type` line the server uses TCP.

Allowed users are listed one per line in `/etc/myRPC/client.conf`. Lines
beginning with `#` and empty lines are ignored. At most 100 users are read.
If either file cannot be opened, the server logs the error and exits with
status 1.

Start it with:

```
myRPC-server
```

The server listens on all interfaces and handles one request at a time until
interrupted. Each request is a JSON-like object holding `login` and `command`.
If the login is on the allowed list, the command runs in a shell and up to
2047 bytes of its standard output are returned. Replies are:

- `{"code":0,"result":"<output>"}` when the command exits with status 0
- `{"code":1,"result":"<output>"}` when it does not
- `{"code":1,"result":"Invalid request format"}` for a malformed request
- `{"code":1,"result":"Unauthorized user"}` for a login not on the list

Progress is printed in colour to the console and written to the system log.

## Client

```
myRPC-client -h 127.0.0.1 -p 5000 -s -c "uname -a"
```

Options:

- `-h`, `--host`: server IPv4 address
- `-p`, `--port`: server port
- `-s`, `--stream`: use a TCP socket (the default)
- `-d`, `--dgram`: use a UDP socket
- `-c`, `--command`: shell command to run
- `--help`: show the usage message

Unknown arguments are ignored. If the host, a non-zero port or the command is
missing, the client logs the error, prints the usage message and exits with
status 1. The login sent is the name of the user running the client. The
reply from the server is printed as `Server response: ...`.

## Library use

The modules can also be used directly:

```python
from myrpc.client import build_request
from myrpc.server import parse_request, build_response

request = build_request("alice", "ls")
parsed = parse_request(request.decode())
print(parsed.login, parsed.command)    # alice ls
print(build_response(0, "done"))       # b'{"code":0,"result":"done"}'
```

`myrpc.client` also provides `parse_args`, `send_request`, `current_username`,
`help_text`, `SocketType`, `ClientOptions` and `ClientError`.

`myrpc.server` provides `parse_config(path)` and `load_users(path)` (both
raise `ConfigError` when the file cannot be opened), `is_user_allowed`,
`execute_command`, `ServerConfig`, `Request`, `RequestFormatError` and
`CommandServer`. A server can be run with files of your own:

```python
from myrpc.server import CommandServer, load_users, parse_config

config = parse_config("myRPC.conf")
users = load_users("client.conf")
with CommandServer(config, users) as server:
    server.bind()
    server.serve_forever()
```

`CommandServer.serve_once()` handles a single connection or datagram, and
`CommandServer.handle_request(data)` turns raw request bytes into the reply
without using a socket.

`myrpc.syslogger` provides `log_info` and `log_error`, which write to the
system log.

## Limitations

- The login is whatever the client sends; the server does not verify it.
  Anyone who can reach the port can claim an allowed name.
- Requests and replies are not real JSON: values are not escaped, a quote
  ends a value, and output containing quotes or newlines is sent as is.
- Requests and replies are each limited to a single buffer (1023 bytes from
  the client, 2047 bytes from the server) and are cut to fit.

## Tests

```
pip install .[test]
pytest
```