"""
Command line entry point.

    restqueue --port 8080

Graceful shutdown
-----------------
On SIGINT / SIGTERM the broker is shut down first, so every blocked GET
answers 503 straight away. uvicorn then stops accepting connections, gives
in-flight requests `--shutdown-grace` seconds to finish and cancels whatever
is still running.
"""
from __future__ import annotations

import asyncio
import logging
import math
import socket
from types import FrameType

import typer
import uvicorn
from pydantic import ValidationError

from restqueue.api.app import create_app
from restqueue.config import DEFAULT_PORT, ServerConfig
from restqueue.core.broker import Broker

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="In-memory named queues over HTTP",
    add_completion=False,
)


class BrokerServer(uvicorn.Server):
    """uvicorn.Server that shuts the broker down as soon as it is told to exit."""

    def __init__(self, config: uvicorn.Config, broker: Broker) -> None:
        super().__init__(config)
        self.broker = broker
        self._loop: asyncio.AbstractEventLoop | None = None

    async def serve(self, sockets: list[socket.socket] | None = None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        # Signal handlers may interrupt the loop mid-callback; defer to it.
        if self._loop is not None and not self.should_exit:
            logger.info("Received signal %d, stopping server", sig)
            self._loop.call_soon_threadsafe(self.broker.shutdown)
        super().handle_exit(sig, frame)


def build_server(config: ServerConfig, broker: Broker | None = None) -> BrokerServer:
    """Wire a broker, the FastAPI app and uvicorn together."""
    broker = broker if broker is not None else Broker()
    uv_config = uvicorn.Config(
        create_app(broker),
        host=config.host,
        port=config.port,
        log_level=config.log_level,
        timeout_keep_alive=math.ceil(config.idle_timeout.total_seconds()),
        timeout_graceful_shutdown=math.ceil(config.shutdown_grace.total_seconds()),
    )
    return BrokerServer(uv_config, broker)


def run(config: ServerConfig) -> None:
    """Serve until terminated."""
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Listening on %s:%d", config.host, config.port)
    build_server(config).run()


@app.command()
def main(
    port: int = typer.Option(
        DEFAULT_PORT, "--port", "-p", envvar="RESTQUEUE_PORT", help="Port to listen on"
    ),
    host: str = typer.Option(
        "0.0.0.0", "--host", envvar="RESTQUEUE_HOST", help="Interface to bind"
    ),
    shutdown_grace: float = typer.Option(
        5.0,
        "--shutdown-grace",
        envvar="RESTQUEUE_SHUTDOWN_GRACE",
        help="Seconds in-flight requests may run after a termination request",
    ),
    log_level: str = typer.Option(
        "info", "--log-level", envvar="RESTQUEUE_LOG_LEVEL", help="Logging level"
    ),
) -> None:
    """Run the queue server."""
    try:
        config = ServerConfig(
            host=host,
            port=port,
            shutdown_grace=shutdown_grace,
            log_level=log_level,
        )
    except ValidationError as exc:
        typer.echo(f"Invalid configuration:\n{exc}", err=True)
        raise typer.Exit(code=2)
    run(config)


if __name__ == "__main__":
    app()
