"""Tagged outcomes for operations that may fail without raising.

``Success`` carries a value and ``Failure`` carries an exception.
``RateLimited`` marks an upstream throttle, which the request queue retries
instead of handing it to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from ..exceptions import RateLimitError

T = TypeVar('T')
E = TypeVar('E', bound=Exception)


class Result(ABC, Generic[T, E]):
    """Either a value or the error that prevented producing it."""

    __slots__ = ()

    def is_success(self) -> bool:
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)

    def is_rate_limited(self) -> bool:
        return isinstance(self, RateLimited)

    @abstractmethod
    def value(self) -> T:
        """The wrapped value; raises ``ValueError`` for non-success outcomes."""

    @abstractmethod
    def error(self) -> E:
        """The wrapped error; raises ``ValueError`` for ``Success``."""


@dataclass(frozen=True, slots=True)
class Success(Result[T, E]):
    _value: T

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def value(self) -> T:
        return self._value

    def error(self) -> E:
        raise ValueError("Cannot get error from Success result")


@dataclass(frozen=True, slots=True)
class Failure(Result[T, E]):
    _error: E

    def __repr__(self) -> str:
        return f"Failure({self._error!r})"

    def value(self) -> T:
        raise ValueError(f"Cannot get value from Failure result: {self._error}")

    def error(self) -> E:
        return self._error


@dataclass(frozen=True, slots=True)
class RateLimited(Result[Any, RateLimitError]):
    """The upstream service throttled the call; retrying later may succeed."""
    retry_after: Optional[float] = None

    def value(self) -> Any:
        raise ValueError("Cannot get value from RateLimited result")

    def error(self) -> RateLimitError:
        return RateLimitError(self.retry_after)


def as_result_async(
    fn: Callable[..., Awaitable[T]]
) -> Callable[..., Awaitable[Result[T, Exception]]]:
    """Wrap a coroutine function so it returns an outcome instead of raising.

    ``RateLimitError`` becomes ``RateLimited``; any other ``Exception`` becomes
    ``Failure``. Cancellation is not an ``Exception`` and still propagates.
    """
    @wraps(fn)
    async def wrapper(*args, **kwargs) -> Result[T, Exception]:
        try:
            value = await fn(*args, **kwargs)
        except RateLimitError as e:
            return RateLimited(e.retry_after)
        except Exception as e:
            return Failure(e)
        return Success(value)
    return wrapper
