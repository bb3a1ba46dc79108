"""Pull-based sequences.

An `Iterable` hands out `Iterator` objects, and the consumer pulls one
`StepResult` at a time until one reports ``done``. The value that comes with
``done`` is not part of the sequence.
"""

import collections.abc
from abc import ABC
from abc import abstractmethod
from collections.abc import Generator
from typing import Any

from .step import StepResult


class Finished(Exception):
    """The iterator has already reported that it is done."""


class Iterator[T](ABC):
    @abstractmethod
    def next(self) -> StepResult[T]:
        raise NotImplementedError

    def throw_into(self, error: Exception, /) -> StepResult[T]:
        """Raise the error at the iterator's current position.

        Iterators that cannot handle errors let them propagate.
        """
        raise error

    def close(self) -> None:
        """Release the sequence's resources. Closing twice does nothing."""


class Iterable[T](ABC):
    @abstractmethod
    def iterator(self) -> Iterator[T]:
        raise NotImplementedError


class GeneratorIterator[T](Iterator[T]):
    """Adapt a Python iterator, or generator, to the pull protocol."""

    def __init__(self, iterator: collections.abc.Iterator[T]):
        self.__iterator = iterator
        self.__finished = False

    def next(self) -> StepResult[T]:
        if self.__finished:
            raise Finished
        try:
            value = next(self.__iterator)
        except StopIteration as stop:
            self.__finished = True
            return StepResult.finish(stop.value)
        except BaseException:
            self.__finished = True
            raise
        return StepResult.of(value)

    def throw_into(self, error: Exception, /) -> StepResult[T]:
        if self.__finished:
            raise Finished
        if not isinstance(self.__iterator, Generator):
            return super().throw_into(error)
        try:
            value = self.__iterator.throw(error)
        except StopIteration as stop:
            self.__finished = True
            return StepResult.finish(stop.value)
        except BaseException:
            self.__finished = True
            raise
        return StepResult.of(value)

    def close(self) -> None:
        if isinstance(self.__iterator, Generator):
            self.__iterator.close()
        self.__finished = True


class Sequence[T](Iterable[T]):
    def __init__(self, iterable: collections.abc.Iterable[T]):
        self.__iterable = iterable

    def __repr__(self):
        return f"<{type(self).__name__} {self.__iterable!r}>"

    def iterator(self) -> Iterator[T]:
        return GeneratorIterator(iter(self.__iterable))


def sequence[T](iterable: collections.abc.Iterable[T], /) -> Iterable[T]:
    """Expose a Python iterable through the pull protocol."""
    return Sequence(iterable)


def values[T](iterable: Iterable[T], /) -> Generator[T, Any, None]:
    """Loop over a pull sequence, closing its iterator however the loop ends."""
    iterator = iterable.iterator()
    try:
        while not (step := iterator.next()).done:
            yield step.value
    finally:
        iterator.close()
