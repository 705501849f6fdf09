from typing import Generic, TypeVar
from dataclasses import dataclass

T = TypeVar('T')


@dataclass
class CommandResult(Generic[T]):
    """The outcome of a middleware operation, turned into an exit code and message by handle_errors."""
    success: bool
    value: T

    @classmethod
    def ok(cls, value: T) -> 'CommandResult[T]':
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, message: str) -> 'CommandResult[str]':
        return cls(success=False, value=message)
