import functools
import inspect
from datetime import datetime, timedelta, timezone

from loguru import logger


def utcnow() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_minutes(delta: timedelta) -> int:
    """Whole minutes in a duration, truncated toward zero."""
    return int(delta.total_seconds() / 60)


def whole_hours(delta: timedelta) -> int:
    """Whole hours in a duration, truncated toward zero."""
    return int(delta.total_seconds() / 3600)


def safe_job_wrapper(func):
    """
    A decorator for scheduled coroutine jobs that logs entry, exit, and exceptions.

    Features:
    - Logs the job name and bound parameters before execution
    - Catches exceptions, logs error info, and re-raises as RuntimeError
    - Logs a success message after successful execution
    - Preserves function metadata and return values
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        func_name = func.__name__

        sig = inspect.signature(func)
        bound_args = sig.bind(*args, **kwargs)
        bound_args.apply_defaults()
        params = {k: v for k, v in bound_args.arguments.items() if k != "self"}

        logger.debug(f"Entering {func_name} with params: {params}")

        try:
            result = await func(*args, **kwargs)
            logger.debug(f"{func_name} finished")
            return result
        except Exception as e:
            logger.error(f"{func_name} raised {type(e).__name__}: {e}")
            raise RuntimeError(f"Exception: {type(e).__name__}: {e}") from e

    return wrapper
