"""
Centralized error handling utilities for services that must degrade instead of failing.

Recommendation and tracking are auxiliary features: a failure inside them is logged
with context and unwrapped into a well-formed fallback value, never propagated to the
request that embeds them.
"""
import inspect
from functools import wraps
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import DatabaseError, IntegrityError, SQLAlchemyError

from src.shared.utils import get_logger


class ErrorHandler:
    """Centralized error handler for services"""

    def __init__(self, logger_name: str):
        self.logger = get_logger(logger_name)

    def log_database_error(
        self, error: Exception, operation: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log database-related errors with the kind of failure they represent"""
        context = context or {}

        if isinstance(error, IntegrityError):
            error_msg = str(error.orig) if hasattr(error, "orig") else str(error)
            self.logger.error(
                f"Database integrity error during {operation}: {error_msg}", extra=context
            )
        elif isinstance(error, DatabaseError):
            self.logger.error(
                f"Database error during {operation}: {str(error)}", extra=context
            )
        else:
            self.logger.error(
                f"SQLAlchemy error during {operation}: {str(error)}", extra=context
            )

    def log_error(
        self, error: Exception, operation: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log any error raised by a service operation"""
        context = context or {}

        if isinstance(error, SQLAlchemyError):
            self.log_database_error(error, operation, context)
        else:
            self.logger.error(
                f"Unexpected error during {operation}: {str(error)}",
                extra=context,
                exc_info=True,
            )


def fallback_on_error(operation: str, fallback: Callable[..., Any]):
    """
    Decorator for async service methods that degrade to a fallback value.

    ``fallback`` receives the same arguments as the decorated method (including
    ``self``) and returns the value handed back to the caller when the method raises.
    It may itself be a coroutine function.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except Exception as e:
                error_handler = getattr(self, "_error_handler", None) or ErrorHandler(
                    self.__class__.__name__
                )
                error_handler.log_error(
                    e,
                    operation,
                    {
                        "method": func.__name__,
                        "function_args": str(args)[:100],
                        "function_kwargs": str(kwargs)[:100],
                    },
                )
                result = fallback(self, *args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
                return result

        return wrapper

    return decorator
