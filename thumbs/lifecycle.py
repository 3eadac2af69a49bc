import asyncio
import contextlib
import logging
import signal
from typing import Awaitable

import uvicorn
from fastapi import FastAPI

EXIT_OK = 0
EXIT_FAILURE = 1


class HttpServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the process supervisor."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


def build_http_server(app: FastAPI, host: str, port: int) -> HttpServer:
    config = uvicorn.Config(app, host=host, port=port, log_config=None)
    return HttpServer(config)


def install_shutdown_signals(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)


def _report(task: asyncio.Task) -> None:
    if task.cancelled():
        logging.critical(f"💥 {task.get_name()} was cancelled")
    elif task.exception() is not None:
        exc = task.exception()
        logging.critical(f"💥 {task.get_name()} failed: {exc!r}", exc_info=exc)
    else:
        logging.critical(f"💥 {task.get_name()} exited unexpectedly")


async def supervise(stop: asyncio.Event, subscription: Awaitable[None], server) -> int:
    """Runs the receive loop and the HTTP server until one of them ends.

    A stop signal is a graceful shutdown and yields ``EXIT_OK``. Either task
    ending on its own before that is fatal and yields ``EXIT_FAILURE``.
    """
    subscriber_task = asyncio.create_task(subscription, name="subscriber")
    server_task = asyncio.create_task(server.serve(), name="http-server")
    stop_task = asyncio.create_task(stop.wait(), name="shutdown-signal")

    done, _ = await asyncio.wait(
        {subscriber_task, server_task, stop_task},
        return_when=asyncio.FIRST_COMPLETED,
    )

    if stop_task in done:
        logging.info("🛑 shutting down...")
        exit_code = EXIT_OK
    else:
        for task in done:
            _report(task)
        exit_code = EXIT_FAILURE
        stop.set()
        stop_task.cancel()

    server.should_exit = True
    results = await asyncio.gather(subscriber_task, server_task, return_exceptions=True)
    if exit_code != EXIT_OK:
        return exit_code

    for task, result in zip((subscriber_task, server_task), results):
        if isinstance(result, BaseException):
            logging.error(f"❌ {task.get_name()} failed during shutdown: {result!r}")
            exit_code = EXIT_FAILURE

    return exit_code
