"""Logging configuration for edgelan.

Provides:
- Console output plus a rotating log file
- A separate performance log for control-plane call timings

Environment Variables:
    EDGELAN_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    EDGELAN_LOG_FILE: Path to log file (default: ~/.edgelan/edgelan.log)
    EDGELAN_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    EDGELAN_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from edgelan.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("list_slots")
    async def list_interface_slots(self, site_id):
        ...

    async with timed_section("reassign", site_id="1234", to="INT_7"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("edgelan.perf")
main_logger = logging.getLogger("edgelan")
_installed_handlers: list[logging.Handler] = []


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("EDGELAN_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".edgelan" / "edgelan.log"
    path_str = os.environ.get("EDGELAN_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(level: Optional[int] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects EDGELAN_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics

    Args:
        level: Console level overriding EDGELAN_LOG_LEVEL
    """
    log_level = level if level is not None else get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("EDGELAN_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("EDGELAN_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-25s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "edgelan-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    # Repeated calls replace the handlers installed earlier
    for handler in _installed_handlers:
        handler.close()
        main_logger.removeHandler(handler)
        perf_logger.removeHandler(handler)
    _installed_handlers[:] = [console_handler, file_handler, perf_handler]

    # edgelan.* module loggers propagate here; edgelan.perf additionally
    # writes to its own file
    main_logger.setLevel(logging.DEBUG)
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.debug(f"Performance logging to: {perf_log_file}")


def _site_from_call(args: tuple, kwargs: dict) -> Optional[str]:
    """Pick the site id out of a control-plane method call."""
    if "site_id" in kwargs:
        return kwargs["site_id"]
    # args[0] is self
    if len(args) > 1 and isinstance(args[1], str):
        return args[1]
    return None


def timed(operation: str, site_id: Optional[str] = None):
    """Decorator to log execution time of sync/async functions.

    Args:
        operation: Name of the operation (e.g., "list_slots", "update_range")
        site_id: Optional site identifier (inferred from the first
            positional argument after self when not given)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            target = site_id or _site_from_call(args, kwargs)
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                perf_logger.info(
                    f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | OK"
                )
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(
                    f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {e}"
                )
                raise

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            target = site_id or _site_from_call(args, kwargs)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.info(
                    f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | OK"
                )
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(
                    f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {e}"
                )
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, site_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("reassign", site_id="1234", to="INT_7"):
            await protocol.run(...)
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {site_id or 'N/A':15s} | {elapsed:8.2f}ms | OK"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.info(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {site_id or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {e}"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
