import inspect
import logging
import time
from functools import wraps

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _log_elapsed(name: str, start_time: float) -> None:
    elapsed_time = time.perf_counter() - start_time
    logging.debug(f"⏱️ {name}: {elapsed_time:.6f}sec")


def time_logger(func):
    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _log_elapsed(func.__qualname__, start_time)

        return async_wrapper

    else:

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _log_elapsed(func.__qualname__, start_time)

        return sync_wrapper
