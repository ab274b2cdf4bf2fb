import functools
import logging
from typing import Callable
import json


def log_method(func: Callable) -> Callable:
    """
    Decorator that logs method entry/exit with parameters and results.
    Also captures and logs any exceptions.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        # Get logger from instance or module
        logger = getattr(args[0], 'logger', None) if args else None
        if logger is None:
            logger = logging.getLogger(func.__module__)

        def format_arg(arg):
            if hasattr(arg, '__dict__') or hasattr(arg, '__dataclass_fields__'):
                return arg.__class__.__name__
            try:
                return json.dumps(arg)
            except (TypeError, ValueError):
                return str(arg)

        args_repr = [format_arg(a) for a in args[1:]]
        kwargs_repr = {k: format_arg(v) for k, v in kwargs.items()}

        logger.debug(
            f"START {func.__qualname__} | "
            f"args: {args_repr}, kwargs: {kwargs_repr}"
        )

        try:
            result = func(*args, **kwargs)
            logger.debug(
                f"END {func.__qualname__} | "
                f"result: {format_arg(result)}"
            )
            return result

        except Exception as e:
            logger.exception(
                f"ERROR in {func.__qualname__}: {str(e)}"
            )
            raise

    return wrapper
