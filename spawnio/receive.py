from collections import deque
from collections.abc import Generator
from concurrent.futures import Future
from dataclasses import dataclass
from dataclasses import field
from threading import Lock
from typing import Any
from typing import Self

from .future import fulfilled
from .future import rejected
from .observation import Iteratee
from .observation import Observable
from .observation import Subscription
from .step import StepResult
from .suspension import Suspension


class AlreadyReceiving(Exception):
    """A receive was started while another one is still waiting."""


class Receiver[T](Iteratee[T]):
    """Buffer pushed values until a driven body asks for them.

    A body suspends at a receive point with `receive`, and is resumed with
    the next pushed value, with ``done`` once the source has closed, or with
    the source's error raised at the receive point.
    """

    on_demand = True

    def __init__(self):
        self.__lock = Lock()
        self.__buffer = deque[T]()
        self.__waiting: Future[StepResult[T]] | None = None
        self.__error: Exception | None = None
        self.__closed = False
        self.__subscription: Subscription[T] | None = None

    def __repr__(self):
        state = "closed" if self.__closed else "open"
        return f"<{type(self).__name__} {state} buffered={len(self.__buffer)}>"

    def start(self, observable: Observable[T], /) -> None:
        self.__subscription = observable.subscribe(self)

    @property
    def active(self) -> bool:
        return self.__subscription is not None and not self.__subscription.closed

    def next(self, value: T, /) -> bool:
        with self.__lock:
            waiting, self.__waiting = self.__waiting, None
            if not self.__settles(waiting):
                self.__buffer.append(value)
                return False
        waiting.set_result(StepResult.of(value))
        return False

    def throw_into(self, error: Exception, /) -> None:
        with self.__lock:
            waiting, self.__waiting = self.__waiting, None
            if not self.__settles(waiting):
                self.__error = error
                return
        waiting.set_exception(error)

    def close(self) -> None:
        with self.__lock:
            self.__closed = True
            waiting, self.__waiting = self.__waiting, None
            if not self.__settles(waiting):
                return
        waiting.set_result(StepResult.finish())

    @staticmethod
    def __settles(waiting: Future | None) -> bool:
        # A receive abandoned by its driver keeps the value buffered.
        return waiting is not None and waiting.set_running_or_notify_cancel()

    def receive(self) -> Future[StepResult[T]]:
        """Get a future of the next pushed value."""
        with self.__lock:
            if self.__buffer:
                return fulfilled(StepResult.of(self.__buffer.popleft()))
            if self.__error is not None:
                error, self.__error = self.__error, None
                return rejected(error)
            if self.__closed:
                return fulfilled(StepResult.finish())
            if self.__waiting is not None and not self.__waiting.cancelled():
                raise AlreadyReceiving(f"{self!r} is already being received from.")
            waiting = self.__waiting = Future[StepResult[T]]()
            subscription = self.__subscription

        if subscription is not None:
            subscription.request()
        return waiting

    def cancel(self) -> None:
        """Unsubscribe from the source. Cancelling twice does nothing."""
        if self.__subscription is not None:
            self.__subscription.close()

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> T:
        step = await Receive(receiver=self)
        if step.done:
            raise StopAsyncIteration
        return step.value


@dataclass(eq=False, kw_only=True)
class Receive[T](Suspension[StepResult[T]]):
    receiver: Receiver[T] = field(repr=False)

    def start(self) -> Future[StepResult[T]]:
        return self.receiver.receive()


@dataclass(eq=False)
class Subscribe[T]:
    """Ask the driver to subscribe a new `Receiver` to the observable.

    The driver keeps track of the receiver and cancels it if the body
    finishes without doing so itself.
    """

    observable: Observable[T]
    receiver: Receiver[T] | None = field(default=None, init=False, repr=False)

    def __await__(self) -> Generator[Self, Receiver[T], Receiver[T]]:
        self.receiver = yield self
        return self.receiver

    async def __aenter__(self) -> Receiver[T]:
        return await self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self.receiver is not None:
            self.receiver.cancel()


def subscribe[T](observable: Observable[T], /) -> Subscribe[T]:
    return Subscribe(observable)
