from collections.abc import Generator
from dataclasses import dataclass
from typing import Self


@dataclass(frozen=True)
class Emit[T]:
    """Produce a value from an async generator body.

    The body stays suspended here until the consumer pulls again.
    """

    value: T

    def __await__(self) -> Generator[Self, None, None]:
        yield self


def emit[T](value: T, /) -> Emit[T]:
    return Emit(value)
