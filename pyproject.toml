[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "myrpc"
version = "1.0.0"
description = "A minimal remote command execution client and server over TCP or UDP with syslog logging"
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "remote", "command", "syslog", "tcp", "udp"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
myRPC-client = "myrpc.client:main"
myRPC-server = "myrpc.server:main"

[tool.hatch.build.targets.wheel]
packages = ["myrpc"]

[tool.pytest.ini_options]
addopts = "-ra"
