"""FastAPI application exposing a Broker over PUT / GET."""

import asyncio
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from restqueue.core.broker import Broker
from restqueue.domain.errors import (
    ClientInputError,
    InvalidTimeoutError,
    ShuttingDownError,
)
from restqueue.domain.models import WaitOutcome

logger = logging.getLogger(__name__)

VALUE_PARAM = "v"
TIMEOUT_PARAM = "timeout"

# Never reaches the client; recorded for the access log only.
CLIENT_CLOSED_REQUEST = 499

DISCONNECT_POLL_INTERVAL = 0.1

_INTEGER = re.compile(r"[+-]?[0-9]+")

router = APIRouter()


def get_broker(request: Request) -> Broker:
    """Dependency returning the broker attached to the application."""
    return request.app.state.broker


def parse_timeout(raw: str | None) -> timedelta | None:
    """
    Parse the timeout query parameter as whole seconds.

    None when absent. Negative values wait for nothing, like zero.
    """
    if raw is None:
        return None
    if not _INTEGER.fullmatch(raw):
        raise InvalidTimeoutError(raw)
    return timedelta(seconds=max(int(raw), 0))


def _require_name(queue_name: str) -> str:
    if not queue_name:
        raise ClientInputError("queue", "queue name must not be empty")
    return queue_name


async def _watch_disconnect(request: Request, abort: asyncio.Event) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)
    abort.set()


@router.put("/{queue_name:path}")
async def put_value(
    queue_name: str,
    request: Request,
    broker: Broker = Depends(get_broker),
) -> Response:
    """PUT /{queue}?v=value — store a value."""
    name = _require_name(queue_name)
    value = request.query_params.get(VALUE_PARAM)
    if value is None:
        raise ClientInputError(VALUE_PARAM, "query parameter is required")
    broker.put(name, value)
    return Response(status_code=200)


@router.get("/{queue_name:path}")
async def get_value(
    queue_name: str,
    request: Request,
    broker: Broker = Depends(get_broker),
) -> Response:
    """GET /{queue}[?timeout=N] — take a value, optionally waiting N seconds."""
    name = _require_name(queue_name)
    result = broker.take(name)
    # The timeout is only read when there is nothing to take.
    timeout = None
    if not result.found:
        timeout = parse_timeout(request.query_params.get(TIMEOUT_PARAM))

    if timeout is not None:
        abort = asyncio.Event()
        watcher = asyncio.create_task(
            _watch_disconnect(request, abort), name=f"restqueue-disconnect-{name}"
        )
        try:
            result = await broker.wait(name, timeout, abort)
        finally:
            watcher.cancel()

    match result.outcome:
        case WaitOutcome.FULFILLED:
            return PlainTextResponse(result.value)
        case WaitOutcome.TIMED_OUT:
            return Response(status_code=404)
        case WaitOutcome.CLIENT_CANCELLED:
            logger.info("Request for %r canceled by client", name)
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        case WaitOutcome.SHUT_DOWN:
            raise ShuttingDownError()


async def _client_input_error(request: Request, exc: Exception) -> Response:
    return PlainTextResponse(str(exc), status_code=400)


async def _shutting_down(request: Request, exc: Exception) -> Response:
    return PlainTextResponse(str(exc), status_code=503)


def create_app(broker: Broker | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        broker: Broker to serve. A fresh one is created when omitted.

    Returns:
        Configured FastAPI application. Its lifespan shuts the broker down
        when the server stops.
    """
    app_broker = broker if broker is not None else Broker()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.broker.shutdown()

    app = FastAPI(
        title="restqueue",
        description="In-memory named queues over HTTP",
        version="0.1.0",
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.broker = app_broker
    app.add_exception_handler(ClientInputError, _client_input_error)
    app.add_exception_handler(ShuttingDownError, _shutting_down)
    app.include_router(router)
    return app
