from collections.abc import Callable
from concurrent.futures import CancelledError
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

from .suspension import Suspension


@dataclass(frozen=True)
class AlreadyFuture[T]:
    future: Future[T]


@dataclass(frozen=True)
class PlainValue[T]:
    value: T


type Coerced[T] = AlreadyFuture[T] | PlainValue[T]


def classify(value: Any, /) -> Coerced[Any]:
    """Decide whether a yielded value is already a future.

    Suspensions count as futures: they are started here, so the
    returned future is the one the suspension settles.
    """
    match value:
        case Future():
            return AlreadyFuture(value)
        case Suspension():
            return AlreadyFuture(value.start())
        case _:
            return PlainValue(value)


def coerce[T](value: Future[T] | Suspension[T] | T, /) -> Future[T]:
    match classify(value):
        case AlreadyFuture(future=future):
            return future
        case PlainValue(value=plain):
            return fulfilled(plain)


def fulfilled[T](value: T, /) -> Future[T]:
    future = Future[T]()
    future.set_result(value)
    return future


def rejected(exception: BaseException, /) -> Future[Any]:
    future = Future[Any]()
    future.set_exception(exception)
    return future


def register[T](
    future: Future[T],
    on_fulfilled: Callable[[T], None],
    on_rejected: Callable[[BaseException], None],
) -> None:
    """Continue with the outcome of the future once it settles.

    Exactly one of the callbacks is called, exactly once. A cancelled
    future is reported as a `CancelledError` rejection.
    """

    def on_done(future: Future[T]):
        if future.cancelled():
            on_rejected(CancelledError())
        elif (exception := future.exception()) is not None:
            on_rejected(exception)
        else:
            on_fulfilled(future.result())

    future.add_done_callback(on_done)
