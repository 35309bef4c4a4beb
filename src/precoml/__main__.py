"""Run the price service: ``python -m precoml`` or the ``precoml`` script."""

import errno
import socket
import sys

import uvicorn

from .config import settings


def _check_port(host: str, port: int) -> str | None:
    """Return an error message when *port* cannot be bound on *host*."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                return f"port {port} on {host} is taken (another precoml running?)"
            return f"cannot bind {host}:{port}: {e.strerror}"
    return None


def main() -> None:
    problem = _check_port(settings.host, settings.port)
    if problem:
        print(f"ERROR: {problem}", file=sys.stderr)
        sys.exit(1)

    uvicorn.run(
        "precoml.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
