"""
Result values returned by adapters, the session manager and the coordinator.

Failures are returned, not raised, so retry loops stay ordinary control flow.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from .uploader_error import UploaderError

T = TypeVar('T')


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""
    value: T = None

    is_ok = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """
    Failed outcome carrying a taxonomy error.

    Attributes:
        error: The failure
        caller_canceled: True when the caller canceled the request on purpose;
            such failures are never retried automatically
    """
    error: UploaderError
    caller_canceled: bool = False

    is_ok = False

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Ok[T], Err]
