"""Result types for error handling without exceptions.

Store lookups and per-item batch evaluation report their outcome as ``Ok`` or
``Err`` values; services decide at their boundary whether an ``Err`` becomes
an exception.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, NoReturn, TypeVar

from attrs import frozen
from beartype import beartype

T = TypeVar("T")
E = TypeVar("E")


@frozen
class Ok(Generic[T]):
    """Success result wrapper."""

    value: T

    @beartype
    def unwrap(self) -> T:
        """Get the success value."""
        return self.value


@frozen
class Err(Generic[E]):
    """Error result wrapper."""

    error: E

    @beartype
    def unwrap(self) -> NoReturn:
        """Raise ValueError as this is Err."""
        raise ValueError(f"Called unwrap on Err value: {self.error}")


if TYPE_CHECKING:
    Result = Ok[T] | Err[E]
else:

    class Result(Generic[T, E]):
        """Runtime stand-in so ``Result[T, E]`` works in annotations."""

        def __class_getitem__(cls, params: Any) -> Any:
            return Ok[Any] | Err[Any]


def try_result(func: Callable[[], T]) -> Ok[T] | Err[str]:
    """Run ``func`` and capture any exception message as an ``Err``."""
    try:
        return Ok(func())
    except Exception as e:
        return Err(str(e) or e.__class__.__name__)
