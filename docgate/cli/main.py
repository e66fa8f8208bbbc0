"""Command line entry point that starts the docgate server."""

from __future__ import annotations

import errno
import socket
from pathlib import Path
from typing import Any

import click
import uvicorn

from ..api.main import create_app
from ..exceptions import DocgateError, PortInUseError
from ..utils.config import GlobalSettings
from ..utils.signals import install_reload_handler


def ensure_port_available(host: str, port: int) -> None:
    """
    Fail fast when ``host:port`` cannot be bound.

    Raises:
        PortInUseError: If another process already listens there
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                raise PortInUseError(host, port) from e
            raise


def build_settings(**overrides: Any) -> GlobalSettings:
    """Settings from the environment, with explicitly given CLI flags on top."""

    return GlobalSettings(**{key: value for key, value in overrides.items() if value is not None})


@click.command()
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (default 5984).")
@click.option("--host", "-o", default=None, help="Interface to bind (default 127.0.0.1).")
@click.option(
    "--dir",
    "-d",
    "database_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for database files (default: current directory).",
)
@click.option(
    "--in-memory",
    "-m",
    is_flag=True,
    default=False,
    help="Keep all data in memory; nothing is persisted.",
)
@click.option(
    "--backend",
    "-b",
    default=None,
    help="Storage backend name or 'package.module:Class' path.",
)
@click.option(
    "--prefix",
    "key_prefix",
    default=None,
    help="Key prefix for every database; replaces the directory for URL-addressed backends.",
)
@click.option("--user", "-u", "username", default=None, help="Admin username for writes.")
@click.option("--password", "-P", default=None, help="Admin password for writes.")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML file holding the runtime configuration.",
)
@click.option("--log-level", default=None, help="Initial log level.")
def main(**options: Any) -> None:
    """Start the docgate HTTP gateway."""

    if not options["in_memory"]:
        # An absent flag must not override DOCGATE_IN_MEMORY.
        options["in_memory"] = None
    settings = build_settings(**options)

    try:
        ensure_port_available(settings.host, settings.port)
        app = create_app(settings)
    except DocgateError as exc:
        raise click.ClickException(str(exc)) from exc

    install_reload_handler(app.state.gateway.store.reload)

    gateway = app.state.gateway
    factory = gateway.snapshot().database_factory
    click.echo(
        f"docgate listening on http://{settings.host}:{settings.port} "
        f"({factory.implementation} backend, prefix {factory.config.prefix})"
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":  # pragma: no cover
    main()
