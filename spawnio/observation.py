"""Push-based sequences, the dual of `spawnio.iteration`.

Instead of a consumer pulling each `StepResult`, the source pushes each
value into an `Iteratee`, which answers whether it wants no more. The
`Subscription` a source hands back enforces the delivery contract for it.
"""

from abc import ABC
from abc import abstractmethod
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any

from .iteration import Iterable
from .iteration import Iterator
from .step import StepResult


class AlreadySubscribed(Exception):
    """The source only supports one subscription at a time."""


class Iteratee[T](ABC):
    #: Ask for each value with `Subscription.request` instead of taking
    #: everything a pull source has at once.
    on_demand: bool = False

    @abstractmethod
    def next(self, value: T, /) -> bool:
        """Receive the next value. Return True when no more are wanted."""
        raise NotImplementedError

    def throw_into(self, error: Exception, /) -> None:
        """Receive a failure of the source.

        Iteratees that do not handle errors let them propagate to the source.
        """
        raise error

    def close(self) -> None:
        """The source will not push anything more."""


class Callbacks[T](Iteratee[T]):
    """An iteratee made of plain functions."""

    def __init__(
        self,
        on_next: Callable[[T], bool | None],
        *,
        on_error: Callable[[Exception], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ):
        self.__on_next = on_next
        self.__on_error = on_error
        self.__on_close = on_close

    def next(self, value: T, /) -> bool:
        return bool(self.__on_next(value))

    def throw_into(self, error: Exception, /) -> None:
        if self.__on_error is None:
            return super().throw_into(error)
        self.__on_error(error)

    def close(self) -> None:
        if self.__on_close is not None:
            self.__on_close()


class Observable[T](ABC):
    @abstractmethod
    def subscribe(self, iteratee: Iteratee[T], /) -> "Subscription[T]":
        raise NotImplementedError


@dataclass(frozen=True)
class _Next[T]:
    value: T


@dataclass(frozen=True)
class _Fail:
    error: Exception


@dataclass(frozen=True)
class _End: ...


class Subscription[T]:
    """One iteratee's subscription to a source.

    Deliveries happen in the order they were requested and never overlap:
    a push made while another is being delivered, from a callback or from
    another thread, is queued and delivered by whoever is delivering.
    The iteratee's ``close`` is called exactly once, and nothing is pushed
    to it after that.
    """

    def __init__(
        self,
        iteratee: Iteratee[T],
        *,
        on_close: Callable[[], None] | None = None,
    ):
        self.__iteratee = iteratee
        self.__on_close = on_close
        self.__lock = Lock()
        self.__pending = deque[_Next[T] | _Fail | _End]()
        self.__delivering = False
        self.__ending = False
        self.__closed = False

    def __repr__(self):
        state = "closed" if self.__closed else "open"
        return f"<{type(self).__name__} {state} {self.__iteratee!r}>"

    @property
    def closed(self) -> bool:
        return self.__closed

    def push(self, value: T, /) -> bool:
        """Deliver a value. Return whether the subscription is still open."""
        self.__deliver(_Next(value))
        return not self.__closed

    def fail(self, error: Exception, /) -> None:
        """Deliver a source failure, after which the subscription closes."""
        self.__deliver(_Fail(error))

    def end(self) -> None:
        """Close once everything already pushed has been delivered."""
        self.__deliver(_End())

    def request(self) -> None:
        """Ask for the next value. Sources that push on their own ignore this."""

    def close(self) -> None:
        """Close now, dropping anything not yet delivered."""
        with self.__lock:
            if self.__closed:
                return
            self.__pending.clear()
            self.__ending = True
            if self.__delivering:
                self.__pending.append(_End())
                return
            self.__closed = True
        self.__finish()

    def __deliver(self, item: _Next[T] | _Fail | _End):
        with self.__lock:
            if self.__ending:
                return
            if not isinstance(item, _Next):
                self.__ending = True
            self.__pending.append(item)
            if self.__delivering:
                return
            self.__delivering = True

        try:
            self.__drain()
        finally:
            with self.__lock:
                self.__delivering = False

    def __drain(self):
        while True:
            with self.__lock:
                if self.__closed or not self.__pending:
                    return
                item = self.__pending.popleft()
                if isinstance(item, _End):
                    self.__closed = True

            match item:
                case _Next(value=value):
                    if self.__iteratee.next(value):
                        with self.__lock:
                            self.__pending.clear()
                            self.__ending = True
                            self.__closed = True
                        self.__finish()
                        return
                case _Fail(error=error):
                    with self.__lock:
                        self.__pending.clear()
                        self.__closed = True
                    try:
                        self.__iteratee.throw_into(error)
                    finally:
                        self.__finish()
                    return
                case _End():
                    self.__finish()
                    return

    def __finish(self):
        try:
            self.__iteratee.close()
        finally:
            if self.__on_close is not None:
                self.__on_close()


class _Pulling[T](Subscription[T]):
    def __init__(self, iteratee: Iteratee[T], iterator: Iterator[T]):
        super().__init__(iteratee, on_close=iterator.close)
        self.__iterator = iterator
        self.__lock = Lock()

    def request(self) -> None:
        with self.__lock:
            if self.closed:
                return
            try:
                step = self.__iterator.next()
            except Exception as error:
                step = error

        match step:
            case Exception():
                self.fail(step)
            case StepResult(done=True):
                self.end()
            case StepResult(value=value):
                self.push(value)


class IterableObservable[T](Observable[T]):
    """Push the values of a pull sequence into each subscriber.

    Subscribers that ask on demand get one value per request. Everybody
    else gets every value during `subscribe`, until they answer done.
    """

    def __init__(self, iterable: Iterable[T]):
        self.__iterable = iterable

    def __repr__(self):
        return f"<{type(self).__name__} {self.__iterable!r}>"

    def subscribe(self, iteratee: Iteratee[T], /) -> Subscription[T]:
        subscription = _Pulling(iteratee, self.__iterable.iterator())
        if not iteratee.on_demand:
            while not subscription.closed:
                subscription.request()
        return subscription


def observe[T](iterable: Iterable[T], /) -> Observable[T]:
    """Turn a pull sequence into a push source."""
    return IterableObservable(iterable)


class Subject[T](Observable[T]):
    """A push source fed by hand, one subscriber at a time.

    Values emitted while nobody is subscribed are dropped.
    """

    def __init__(self):
        self.__lock = Lock()
        self.__subscription: Subscription[T] | None = None
        self.__error: Exception | None = None
        self.__completed = False

    def subscribe(self, iteratee: Iteratee[T], /) -> Subscription[T]:
        with self.__lock:
            if self.__subscription is not None:
                raise AlreadySubscribed(f"{self!r} already has a subscriber.")
            subscription = Subscription[T](iteratee, on_close=self.__detach)
            completed, error = self.__completed, self.__error
            if not completed:
                self.__subscription = subscription

        if error is not None:
            subscription.fail(error)
        elif completed:
            subscription.end()
        return subscription

    @property
    def subscribed(self) -> bool:
        return self.__subscription is not None

    def emit(self, value: T, /) -> bool:
        """Push a value. Return whether anybody is still subscribed."""
        if (subscription := self.__subscription) is None:
            return False
        return subscription.push(value)

    def fail(self, error: Exception, /) -> None:
        with self.__lock:
            self.__completed = True
            self.__error = error
            subscription = self.__subscription
        if subscription is not None:
            subscription.fail(error)

    def complete(self) -> None:
        with self.__lock:
            self.__completed = True
            subscription = self.__subscription
        if subscription is not None:
            subscription.end()

    def __detach(self):
        with self.__lock:
            self.__subscription = None


def each[T](
    observable: Observable[T],
    on_next: Callable[[T], bool | None],
    **callbacks: Any,
) -> Subscription[T]:
    """Subscribe plain functions to a source."""
    return observable.subscribe(Callbacks(on_next, **callbacks))
