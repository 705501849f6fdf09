import json
from typing import Any, Callable, Dict, List, Tuple

import yaml

from index_lifecycle.models.utils import ExitCode


def support_json_return() -> Callable[[Tuple[ExitCode, Dict | List | str]], Tuple[ExitCode, str]]:
    """Render the value of an (ExitCode, value) result as JSON when as_json is set, YAML otherwise."""
    def decorator(func: Callable[..., Tuple[ExitCode, Any]]) -> Callable[..., Tuple[ExitCode, str]]:
        def wrapper(*args, as_json=False, **kwargs) -> Tuple[ExitCode, str]:
            exit_code, value = func(*args, **kwargs)
            if exit_code != ExitCode.SUCCESS or isinstance(value, str):
                return exit_code, value
            if as_json:
                return exit_code, json.dumps(value)
            return exit_code, yaml.safe_dump(value, sort_keys=False)
        wrapper.__name__ = func.__name__
        return wrapper
    return decorator
