"""Writing messages to the system log under the ``myRPC`` identity."""

import syslog

IDENT = "myRPC"


def _write(priority: int, prefix: str, message: str) -> None:
    syslog.openlog(IDENT, syslog.LOG_PID | syslog.LOG_CONS, syslog.LOG_USER)
    try:
        syslog.syslog(priority, f"{prefix}: {message}")
    finally:
        syslog.closelog()


def log_error(message: str) -> None:
    """Log ``message`` at error priority."""
    _write(syslog.LOG_ERR, "ERROR", message)


def log_info(message: str) -> None:
    """Log ``message`` at informational priority."""
    _write(syslog.LOG_INFO, "INFO", message)