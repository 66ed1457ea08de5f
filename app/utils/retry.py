from functools import wraps
from sqlalchemy.exc import IntegrityError
from structlog import get_logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_none

logger = get_logger()


class PlaceholderConflict(Exception):
    """An insert was absorbed by ON CONFLICT but no matching row can be found."""


def retry_on_conflict(tries: int = 2):
    """Re-run an insert-or-fetch coroutine when it loses a unique-key race."""
    def decorator(func):
        @wraps(func)
        @retry(
            stop=stop_after_attempt(tries),
            wait=wait_none(),
            retry=retry_if_exception_type((IntegrityError, PlaceholderConflict)),
            reraise=True,
        )
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (IntegrityError, PlaceholderConflict) as e:
                logger.warning("Unique conflict, retrying", func=func.__name__, error=str(e))
                raise
        return wrapper
    return decorator
