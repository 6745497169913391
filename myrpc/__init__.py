"""Remote command execution client and server over TCP or UDP, with syslog logging."""

__version__ = "1.0.0"
__all__ = ["client", "server", "syslogger"]