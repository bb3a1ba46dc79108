from collections.abc import Iterable
from concurrent.futures import CancelledError
from concurrent.futures import Future
from dataclasses import dataclass
from dataclasses import field
from threading import Lock
from typing import Any
from typing import overload

from .future import coerce
from .suspension import Suspension


@dataclass(eq=False, kw_only=True)
class Gather[T](Suspension[T]):
    awaitables: Iterable[Any] = field(repr=False)

    def start(self) -> Future[T]:
        gathered = Future()
        lock = Lock()
        futures = [coerce(awaitable) for awaitable in self.awaitables]

        # The gathered future is never set running, so it stays cancellable
        # even when some of the gathered futures are already running.

        def gathered_on_done(gathered):
            # Cancel all futures if the gathered future is cancelled
            if gathered.cancelled():
                for future in futures:
                    future.cancel()

        gathered.add_done_callback(gathered_on_done)

        def on_done(future):
            with lock:
                if gathered.done() or not all(f.done() for f in futures):
                    return
                settle()

        def settle():
            results = []
            exceptions = []
            for future in futures:
                if future.cancelled():
                    exceptions.append(CancelledError())
                elif (exception := future.exception(timeout=0)) is not None:
                    exceptions.append(exception)
                else:
                    results.append(future.result(timeout=0))
            if exceptions:
                gathered.set_exception(
                    ExceptionGroup("Some gathered futures failed.", exceptions)
                )
            else:
                gathered.set_result(tuple(results))

        if not futures:
            gathered.set_result(())
        for f in futures:
            f.add_done_callback(on_done)

        return gathered


type S[T] = Future[T] | Suspension[T]


@overload
def gather[T1](s: S[T1], /) -> Gather[tuple[T1]]: ...
@overload
def gather[T1, T2](s1: S[T1], s2: S[T2], /) -> Gather[tuple[T1, T2]]: ...
@overload
def gather[T1, T2, T3](
    s1: S[T1], s2: S[T2], s3: S[T3], /
) -> Gather[tuple[T1, T2, T3]]: ...
@overload
def gather(*awaitables: Any) -> Gather[tuple[Any, ...]]: ...


def gather(*awaitables: Any) -> Gather[tuple[Any, ...]]:
    """Wait for every awaitable, settling with a tuple of their values."""
    return Gather(awaitables=awaitables)
