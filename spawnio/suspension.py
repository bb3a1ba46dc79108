from abc import abstractmethod
from collections.abc import Awaitable
from collections.abc import Generator
from concurrent.futures import Future
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Self

from .event import random_id


@dataclass(eq=False, kw_only=True)
class Suspension[R](Awaitable[R]):
    """Base class for everything a driven body can suspend on.

    Awaiting a suspension yields it to the driver, which starts it and
    resumes the body once the started future settles.
    """

    id: str = field(default_factory=random_id)

    @abstractmethod
    def start(self) -> Future[R]:
        raise NotImplementedError("Subclasses must implement this method.")

    def __await__(self) -> Generator[Self, R, R]:
        return (yield self)


@dataclass(eq=False, kw_only=True)
class Wait[R](Suspension[R]):
    """Suspend until a future settles, or continue at once with a plain value."""

    awaitable: Future[R] | Suspension[R] | R = field(repr=False)

    def start(self) -> Future[R]:
        from .future import coerce

        return coerce(self.awaitable)


def wait[R](awaitable: Future[R] | Suspension[R] | R, /) -> Suspension[R]:
    """Make any future or value awaitable from an ``async def`` body."""
    return awaitable if isinstance(awaitable, Suspension) else Wait(awaitable=awaitable)
