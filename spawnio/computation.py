from abc import ABC
from abc import abstractmethod
from collections.abc import Awaitable
from collections.abc import Coroutine
from collections.abc import Generator
from enum import Enum
from typing import Any

from .step import StepResult


class AlreadyRunning(RuntimeError):
    """The computation was resumed from inside its own step."""


class AlreadyFinished(RuntimeError):
    """The computation was resumed after it finished."""


class State(Enum):
    CREATED = "created"
    SUSPENDED = "suspended"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        return self in (State.DONE, State.FAILED)


class Computation[Y = Any, S = Any, R = Any](ABC):
    """A resumable unit of work.

    Each resume advances the work to its next suspension point and reports
    the yielded value, or reports the return value with ``done`` set.
    Errors that escape the work are raised from the resume call itself.
    """

    @property
    @abstractmethod
    def state(self) -> State:
        raise NotImplementedError

    @abstractmethod
    def resume(self, value: S | None = None, /) -> StepResult[Y | R]:
        raise NotImplementedError

    @abstractmethod
    def resume_with_error(self, error: BaseException, /) -> StepResult[Y | R]:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError


class GeneratorComputation[Y = Any, S = Any, R = Any](Computation[Y, S, R]):
    """Drive a generator or coroutine through the `Computation` interface."""

    def __init__(self, generator: Generator[Y, S, R] | Coroutine[Y, S, R]):
        self.__generator = generator
        self.__state = State.CREATED

    def __repr__(self):
        return f"<{type(self).__name__} {self.__state.value} {self.__generator!r}>"

    @property
    def state(self) -> State:
        return self.__state

    def resume(self, value: S | None = None, /) -> StepResult[Y | R]:
        return self.__step(self.__generator.send, value)

    def resume_with_error(self, error: BaseException, /) -> StepResult[Y | R]:
        return self.__step(self.__generator.throw, error)

    def close(self) -> None:
        if self.__state.finished:
            return
        if self.__state is State.RUNNING:
            raise AlreadyRunning(f"{self!r} cannot be closed while it is running.")
        self.__state = State.RUNNING
        try:
            self.__generator.close()
        except BaseException:
            self.__state = State.FAILED
            raise
        self.__state = State.DONE

    def __step(self, method, argument) -> StepResult[Y | R]:
        if self.__state.finished:
            raise AlreadyFinished(f"{self!r} cannot be resumed.")
        if self.__state is State.RUNNING:
            raise AlreadyRunning(f"{self!r} is already running.")

        self.__state = State.RUNNING
        try:
            yielded = method(argument)
        except StopIteration as stop:
            self.__state = State.DONE
            return StepResult.finish(stop.value)
        except BaseException:
            self.__state = State.FAILED
            raise
        self.__state = State.SUSPENDED
        return StepResult.of(yielded)


def computation(target: Any, /) -> Computation:
    """Build a computation from whatever a body factory returned."""
    match target:
        case Computation():
            return target
        case Generator() | Coroutine():
            return GeneratorComputation(target)
        case Awaitable():
            return GeneratorComputation(target.__await__())
        case _:
            raise TypeError(
                f"Expected a generator, coroutine or awaitable, got: {target!r}"
            )
