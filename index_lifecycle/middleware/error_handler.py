import logging
from typing import Any, Callable, Optional, Tuple

import requests

from index_lifecycle.models.utils import ExitCode

logger = logging.getLogger(__name__)


def engine_error_reason(response: Optional[requests.Response]) -> Optional[str]:
    """Pull `type: reason` out of an engine error body such as {"error": {"type": ..., "reason": ...}}."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return f"{error.get('type')}: {error.get('reason')}"
    return error


def handle_errors(operation_type: str,
                  on_success: Callable[[Any], Tuple[ExitCode, str]] = lambda value: (ExitCode.SUCCESS, value),
                  on_failure: Callable[[Any], Tuple[ExitCode, str]] = lambda value: (ExitCode.FAILURE, value)
                  ) -> Callable[[Any], Tuple[ExitCode, str]]:
    def decorator(func: Callable[..., Any]) -> Callable[..., Tuple[ExitCode, str]]:
        def wrapper(*args, **kwargs) -> Tuple[ExitCode, str]:
            try:
                result = func(*args, **kwargs)
            except NotImplementedError:
                logger.error(f"{func.__name__} is not implemented for {operation_type}")
                return ExitCode.FAILURE, f"{func.__name__} is not implemented for {operation_type}"
            except requests.exceptions.HTTPError as e:
                reason = engine_error_reason(e.response)
                logger.error(f"Engine rejected {func.__name__} {operation_type}: {e} {reason or ''}")
                message = f"Failure on {func.__name__} for {operation_type}: {e}"
                return ExitCode.FAILURE, f"{message} ({reason})" if reason else message
            except Exception as e:
                logger.error(f"Failed to {func.__name__} {operation_type}: {e}")
                return ExitCode.FAILURE, f"Failure on {func.__name__} for {operation_type}: {type(e).__name__} {e}"
            if result.success:
                return on_success(result.value)
            return on_failure(result.value)
        wrapper.__name__ = func.__name__
        return wrapper
    return decorator
