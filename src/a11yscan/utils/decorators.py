import functools
import json
import logging
from typing import Callable

from ..errors import NavigationError


def _format_arg(arg):
    if hasattr(arg, '__dict__'):
        return arg.__class__.__name__
    try:
        return json.dumps(arg)
    except (TypeError, ValueError):
        return str(arg)


def log_method(func: Callable) -> Callable:
    """
    Decorator for coroutine methods that logs entry/exit with parameters and results.
    Exceptions are logged and re-raised; a page that cannot be loaded is
    logged as a warning without traceback.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = (getattr(args[0], 'logger', None) if args else None) or logging.getLogger(func.__module__)
        logger.debug(f"START {func.__qualname__} | args: {[_format_arg(a) for a in args[1:]]}")
        try:
            result = await func(*args, **kwargs)
        except NavigationError as e:
            logger.warning(f"{func.__qualname__} could not load the page: {e}")
            raise
        except Exception as e:
            logger.exception(f"ERROR in {func.__qualname__}: {e}")
            raise
        logger.debug(f"END {func.__qualname__} | result: {_format_arg(result)}")
        return result

    return wrapper
