from abc import ABC
from abc import abstractmethod
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import InvalidStateError
from functools import partial
from threading import Lock
from typing import Any

from .computation import Computation
from .computation import computation
from .emit import Emit
from .event import Event
from .event import random_id
from .events import ComputationCancelled
from .events import ComputationContinued
from .events import ComputationErrored
from .events import ComputationResumed
from .events import ComputationStarted
from .events import ComputationSucceeded
from .events import ComputationSuspended
from .events import ComputationThrew
from .events import SubscriptionOpened
from .future import coerce
from .future import register
from .receive import Receiver
from .receive import Subscribe
from .scheduler import Inline
from .scheduler import Scheduler
from .stream import Stream
from .suspension import Suspension

type Factory = Callable[[], Any]


class Driver(ABC):
    """Drive one computation from suspension point to suspension point.

    The driver owns the computation it builds from the factory. Every step
    goes through `_advance`, so steps of one driver never overlap and a
    step made runnable by an already-settled future is queued rather than
    run recursively.
    """

    def __init__(
        self,
        factory: Factory,
        *,
        scheduler: Scheduler | None = None,
        stream: Stream | None = None,
    ):
        self.id = random_id()
        self.__factory = factory
        self.__scheduler = scheduler or Inline()
        self.__stream = stream
        self.__computation: Computation | None = None
        self.__lock = Lock()
        self.__steps = deque[Callable[[], None]]()
        self.__stepping = False
        self.__finished = False
        self.__awaiting: Future[Any] | None = None
        self.__receivers: list[Receiver[Any]] = []

    def __repr__(self):
        state = "finished" if self.__finished else "running"
        return f"<{type(self).__name__} {self.id!r} {state}>"

    @property
    def finished(self) -> bool:
        return self.__finished

    @abstractmethod
    def _returned(self, value: Any, /) -> None:
        """The computation returned a value."""
        raise NotImplementedError

    @abstractmethod
    def _raised(self, exception: BaseException, /) -> None:
        """The computation raised an exception."""
        raise NotImplementedError

    def _publish(self, event: Event) -> None:
        if self.__stream is not None:
            self.__stream.publish(event)

    def _schedule(self, step: Callable[[], None], /) -> None:
        called = self.__scheduler.call(partial(self._advance, step))
        called.add_done_callback(self.__called)

    def __called(self, called: Future[None]):
        if (exception := called.exception()) is not None:
            self._publish(ComputationErrored(id=self.id, exception=exception))

    def _advance(self, step: Callable[[], None], /) -> None:
        """Run the step, and any steps it makes runnable, one at a time."""
        with self.__lock:
            self.__steps.append(step)
            if self.__stepping:
                return
            self.__stepping = True

        while True:
            with self.__lock:
                if not self.__steps:
                    self.__stepping = False
                    return
                step = self.__steps.popleft()
            try:
                step()
            except BaseException:
                with self.__lock:
                    self.__stepping = False
                raise

    def _start(self, error: BaseException | None = None, /) -> None:
        if self.__finished:
            return
        self._publish(ComputationStarted(id=self.id))
        try:
            self.__computation = computation(self.__factory())
        except BaseException as exception:
            self.__fail(exception)
            return

        if error is None:
            self.__step(self.__computation.resume)
        else:
            self.__step(partial(self.__computation.resume_with_error, error))

    def _send(self, value: Any, /) -> None:
        if self.__finished or self.__computation is None:
            return
        self._publish(ComputationResumed(id=self.id))
        self.__step(partial(self.__computation.resume, value))

    def _throw(self, error: BaseException, /) -> None:
        if self.__finished or self.__computation is None:
            return
        self._publish(ComputationResumed(id=self.id))
        self.__step(partial(self.__computation.resume_with_error, error))

    def _suspended(self, value: Any, /) -> None:
        """Handle what the computation yielded at its suspension point."""
        match value:
            case Subscribe():
                self.__subscribe(value)
            case Emit():
                self._advance(
                    partial(
                        self._throw,
                        TypeError(f"{self!r} cannot emit values, only await them."),
                    )
                )
            case _:
                self.__await(value)

    def _close(self) -> None:
        """Stop the computation where it is suspended.

        Active subscriptions are cancelled first, then the computation is
        closed so its cleanup code runs. Errors raised by that cleanup
        propagate.
        """
        if self.__finished:
            return
        awaiting = self.__awaiting
        self.__finish()
        if awaiting is not None:
            awaiting.cancel()
        if self.__computation is not None:
            self.__computation.close()

    def __step(self, resume: Callable[[], Any]):
        try:
            step = resume()
        except BaseException as exception:
            self.__fail(exception)
            return

        if step.done:
            self.__finish()
            self._publish(ComputationSucceeded(id=self.id, value=step.value))
            self._returned(step.value)
        else:
            self._suspended(step.value)

    def __fail(self, exception: BaseException):
        self.__finish()
        self._publish(ComputationErrored(id=self.id, exception=exception))
        self._raised(exception)

    def __finish(self):
        self.__finished = True
        self.__awaiting = None
        receivers, self.__receivers = self.__receivers, []
        for receiver in receivers:
            receiver.cancel()

    def __subscribe(self, instruction: Subscribe[Any]):
        receiver = Receiver[Any]()
        try:
            receiver.start(instruction.observable)
        except Exception as exception:
            self._advance(partial(self._throw, exception))
            return

        instruction.receiver = receiver
        self.__receivers = [r for r in self.__receivers if r.active]
        self.__receivers.append(receiver)
        self._publish(
            SubscriptionOpened(id=self.id, observable=instruction.observable)
        )
        self._advance(partial(self._send, receiver))

    def __await(self, value: Any):
        self._publish(ComputationSuspended(id=self.id, awaiting=value))
        try:
            future = coerce(value)
        except Exception as exception:
            self._advance(partial(self._throw, exception))
            return

        # Only futures the driver started itself are cancelled on close.
        self.__awaiting = future if isinstance(value, Suspension) else None
        register(future, self.__continued, self.__threw)

    def __continued(self, value: Any):
        if self.__finished:
            return
        self._publish(ComputationContinued(id=self.id, value=value))
        self._schedule(partial(self._send, value))

    def __threw(self, exception: BaseException):
        if self.__finished:
            return
        self._publish(ComputationThrew(id=self.id, exception=exception))
        self._schedule(partial(self._throw, exception))


class Spawned[R](Driver):
    """Drive a computation to settle a single future."""

    def __init__(
        self,
        factory: Factory,
        *,
        scheduler: Scheduler | None = None,
        stream: Stream | None = None,
    ):
        super().__init__(factory, scheduler=scheduler, stream=stream)
        self.future = Future[R]()
        self.future.add_done_callback(self.__done_callback)

    def start(self) -> Future[R]:
        self._schedule(self._start)
        return self.future

    def _returned(self, value: R, /) -> None:
        self.__settle(self.future.set_result, value)

    def _raised(self, exception: BaseException, /) -> None:
        self.__settle(self.future.set_exception, exception)

    def __settle(self, method: Callable[[Any], None], argument: Any):
        try:
            method(argument)
        except InvalidStateError:
            # Losing a race against cancel() is the only acceptable reason.
            if not self.future.cancelled():
                raise

    def __done_callback(self, future: Future[R]):
        if future.cancelled():
            self._schedule(self.__cancel)

    def __cancel(self):
        if self.finished:
            return
        self._publish(ComputationCancelled(id=self.id))
        try:
            self._close()
        except BaseException as exception:
            self._publish(ComputationErrored(id=self.id, exception=exception))


def spawn[R](
    factory: Callable[[], Any],
    /,
    *,
    scheduler: Scheduler | None = None,
    stream: Stream | None = None,
) -> Future[R]:
    """Drive the computation the factory builds, and return its future.

    The factory is called once, by the driver, and must return a generator,
    a coroutine, an awaitable, or a `Computation`. Whatever the computation
    yields or awaits is coerced into a future, and the computation is
    resumed with its value, or has its error raised at that point, once it
    settles. The returned future settles exactly once, with the return value
    or with the first error the computation does not handle itself.

    Cancelling the returned future closes the computation.
    """
    return Spawned[R](factory, scheduler=scheduler, stream=stream).start()
