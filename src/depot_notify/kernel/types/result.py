"""Result[T, E] – Ok and Err variants for fallible construction.

Provider factories return ``Ok(provider)`` or ``Err(ProviderNotConfiguredError)``
instead of ``None``; callers branch with ``match``::

    match providers.for_channel(Channel.SMS):
        case Ok(provider):
            ...
        case Err(error):
            ...
"""

from __future__ import annotations

import dataclasses
from typing import Generic, NoReturn, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclasses.dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:  # noqa: ARG002
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        """Raise the error when it is an exception, else wrap it in ``ValueError``."""
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(self.error)

    def unwrap_or(self, default: T) -> T:
        return default


type Result[T, E] = Ok[T] | Err[E]

__all__ = ["Err", "Ok", "Result"]
