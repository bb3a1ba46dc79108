from collections.abc import Callable
from concurrent.futures import Future
from functools import partial
from threading import Lock
from typing import Any
from typing import Self

from .driver import Driver
from .driver import Factory
from .driver import spawn
from .emit import Emit
from .events import ComputationCancelled
from .events import ComputationClosed
from .events import ComputationErrored
from .events import ValueEmitted
from .future import fulfilled
from .future import rejected
from .scheduler import Scheduler
from .step import StepResult
from .stream import Stream
from .suspension import wait


class AlreadyPulling(RuntimeError):
    """A value was pulled while the previous pull is still pending."""


class AsyncGenerator[T](Driver):
    """Drive a body that awaits futures and pushed values, and emits values.

    The consumer pulls one value at a time with `next`. The body runs until
    it emits, and then stays suspended at that emit until the next pull.
    Between pulls it may suspend on awaited futures and on receive points of
    the subscriptions it opened, one suspension at a time.
    """

    def __init__(
        self,
        factory: Factory,
        *,
        scheduler: Scheduler | None = None,
        stream: Stream | None = None,
    ):
        super().__init__(factory, scheduler=scheduler, stream=stream)
        self.__lock = Lock()
        self.__pull: Future[StepResult[T]] | None = None
        self.__started = False

    def next(self) -> Future[StepResult[T]]:
        """Pull the next emitted value, or ``done`` once the body has returned."""
        return self.__request(None)

    def throw_into(self, error: Exception, /) -> Future[StepResult[T]]:
        """Raise the error at the emit the body is suspended at."""
        return self.__request(error)

    def close(self) -> Future[None]:
        """Stop the body early.

        Subscriptions the body still holds are cancelled before the body is
        closed. A pull that is still pending settles as ``done``.
        """
        closed = Future[None]()
        self._schedule(partial(self.__close, closed))
        return closed

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> T:
        step = await wait(self.next())
        if step.done:
            raise StopAsyncIteration
        return step.value

    def _suspended(self, value: Any, /) -> None:
        match value:
            case Emit(value=emitted):
                self._publish(ValueEmitted(id=self.id, value=emitted))
                self.__settle(Future.set_result, StepResult.of(emitted))
            case _:
                super()._suspended(value)

    def _returned(self, value: Any, /) -> None:
        self.__settle(Future.set_result, StepResult.finish(value))

    def _raised(self, exception: BaseException, /) -> None:
        self.__settle(Future.set_exception, exception)

    def __request(self, error: Exception | None) -> Future[StepResult[T]]:
        with self.__lock:
            if self.__pull is not None:
                raise AlreadyPulling(f"{self!r} is already being pulled from.")
            if self.finished:
                return fulfilled(StepResult.finish()) if error is None else rejected(error)
            pull = self.__pull = Future[StepResult[T]]()
            started, self.__started = self.__started, True

        pull.add_done_callback(self.__pull_callback)
        if not started:
            self._schedule(partial(self._start, error))
        elif error is None:
            self._schedule(partial(self._send, None))
        else:
            self._schedule(partial(self._throw, error))
        return pull

    def __settle(self, method: Callable[[Future, Any], None], argument: Any):
        with self.__lock:
            pull, self.__pull = self.__pull, None
        # Nobody is waiting when the pull was cancelled.
        if pull is not None and pull.set_running_or_notify_cancel():
            method(pull, argument)

    def __pull_callback(self, pull: Future[StepResult[T]]):
        if pull.cancelled():
            self._schedule(self.__cancel)

    def __cancel(self):
        if self.finished:
            return
        with self.__lock:
            self.__pull = None
        self._publish(ComputationCancelled(id=self.id))
        try:
            self._close()
        except BaseException as exception:
            self._publish(ComputationErrored(id=self.id, exception=exception))

    def __close(self, closed: Future[None]):
        if not self.finished:
            self._publish(ComputationClosed(id=self.id))
            try:
                self._close()
            except BaseException as exception:
                self.__settle(Future.set_exception, exception)
                closed.set_exception(exception)
                return
            self.__settle(Future.set_result, StepResult.finish())
        closed.set_result(None)


def async_generator[T](
    factory: Callable[[], Any],
    /,
    *,
    scheduler: Scheduler | None = None,
    stream: Stream | None = None,
) -> AsyncGenerator[T]:
    """Build an async generator whose body the factory makes on first pull."""
    return AsyncGenerator[T](factory, scheduler=scheduler, stream=stream)


def collect[T](
    generator: AsyncGenerator[T],
    /,
    *,
    scheduler: Scheduler | None = None,
) -> Future[list[T]]:
    """Pull every value from the generator into a list."""

    def pull_all():
        values: list[T] = []
        while not (step := (yield generator.next())).done:
            values.append(step.value)
        return values

    return spawn(pull_all, scheduler=scheduler)
