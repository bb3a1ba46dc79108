from threading import Barrier
from threading import Thread

import pytest

from .iteration import GeneratorIterator
from .iteration import Iterable
from .iteration import Iterator
from .iteration import sequence
from .observation import AlreadySubscribed
from .observation import Callbacks
from .observation import Iteratee
from .observation import Subject
from .observation import Subscription
from .observation import each
from .observation import observe
from .step import StepResult


class Recorder(Iteratee[int]):
    """Record every call a source makes, optionally stopping early."""

    def __init__(self, *, stop_at: int | None = None, handle_errors: bool = True):
        self.calls: list[tuple[str, object]] = []
        self.stop_at = stop_at
        self.handle_errors = handle_errors

    def next(self, value: int, /) -> bool:
        self.calls.append(("next", value))
        return value == self.stop_at

    def throw_into(self, error: Exception, /) -> None:
        self.calls.append(("error", error))
        if not self.handle_errors:
            raise error

    def close(self) -> None:
        self.calls.append(("close", None))


def test_observe_pushes_in_order_then_closes_once():
    recorder = Recorder()
    subscription = observe(sequence([1, 2, 3])).subscribe(recorder)
    assert recorder.calls == [("next", 1), ("next", 2), ("next", 3), ("close", None)]
    assert subscription.closed


def test_done_stops_the_source():
    recorder = Recorder(stop_at=2)
    observe(sequence([1, 2, 3, 4])).subscribe(recorder)
    assert recorder.calls == [("next", 1), ("next", 2), ("close", None)]


def test_done_releases_the_pulled_iterator():
    closed = []

    class Numbers(Iterable[int]):
        def iterator(self):
            class NumbersIterator(Iterator[int]):
                n = 0

                def next(self):
                    self.n += 1
                    return StepResult.of(self.n)

                def close(self):
                    closed.append(True)

            return NumbersIterator()

    recorder = Recorder(stop_at=3)
    observe(Numbers()).subscribe(recorder)
    assert [value for kind, value in recorder.calls if kind == "next"] == [1, 2, 3]
    assert closed == [True]


def test_source_errors_are_thrown_into_the_iteratee():
    def failing():
        yield 1
        raise OSError("connection reset")

    class Failing(Iterable[int]):
        def iterator(self):
            return GeneratorIterator(failing())

    recorder = Recorder()
    observe(Failing()).subscribe(recorder)
    kinds = [kind for kind, _ in recorder.calls]
    assert kinds == ["next", "error", "close"]


def test_unhandled_source_errors_propagate():
    subject = Subject[int]()
    recorder = Recorder(handle_errors=False)
    subject.subscribe(recorder)
    with pytest.raises(OSError, match="gone"):
        subject.fail(OSError("gone"))
    assert recorder.calls[-1] == ("close", None)


def test_callbacks_without_error_handler_propagate():
    subject = Subject[int]()
    subject.subscribe(Callbacks(lambda value: None))
    with pytest.raises(ValueError):
        subject.fail(ValueError())


def test_subject_allows_one_subscriber_at_a_time():
    subject = Subject[int]()
    subscription = subject.subscribe(Recorder())
    with pytest.raises(AlreadySubscribed):
        subject.subscribe(Recorder())

    subscription.close()
    assert not subject.subscribed
    subject.subscribe(Recorder())


def test_subject_pushes_until_complete():
    subject = Subject[int]()
    recorder = Recorder()
    subject.subscribe(recorder)
    assert subject.emit(1)
    assert subject.emit(2)
    subject.complete()
    assert not subject.emit(3)
    assert recorder.calls == [("next", 1), ("next", 2), ("close", None)]


def test_subscribing_to_a_completed_subject_closes_at_once():
    subject = Subject[int]()
    subject.complete()
    recorder = Recorder()
    subject.subscribe(recorder)
    assert recorder.calls == [("close", None)]


def test_close_from_the_consumer_calls_close_exactly_once():
    recorder = Recorder()
    subscription = Subscription(recorder)
    subscription.push(1)
    subscription.close()
    subscription.close()
    subscription.end()
    assert not subscription.push(2)
    assert recorder.calls == [("next", 1), ("close", None)]


def test_reentrant_pushes_are_delivered_after_the_current_one():
    calls = []

    class Echo(Iteratee[int]):
        def next(self, value: int, /) -> bool:
            calls.append(("start", value))
            if value == 1:
                subscription.push(2)
                subscription.end()
            calls.append(("end", value))
            return False

        def close(self) -> None:
            calls.append(("close", None))

    subscription = Subscription(Echo())
    subscription.push(1)
    assert calls == [
        ("start", 1),
        ("end", 1),
        ("start", 2),
        ("end", 2),
        ("close", None),
    ]


def test_close_during_delivery_waits_for_the_current_value():
    calls = []

    class Closing(Iteratee[int]):
        def next(self, value: int, /) -> bool:
            calls.append(("next", value))
            subscription.close()
            calls.append(("after close", value))
            return False

        def close(self) -> None:
            calls.append(("close", None))

    subscription = Subscription(Closing())
    subscription.push(1)
    assert calls == [("next", 1), ("after close", 1), ("close", None)]


def test_pushes_from_many_threads_never_overlap():
    subject = Subject[int]()
    active = []
    overlaps = []
    received = []

    def on_next(value):
        active.append(value)
        if len(active) > 1:
            overlaps.append(tuple(active))
        received.append(value)
        active.remove(value)

    each(subject, on_next)
    barrier = Barrier(4)

    def producer(offset):
        barrier.wait()
        for i in range(100):
            subject.emit(offset + i)

    threads = [Thread(target=producer, args=(1000 * n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlaps == []
    assert sorted(received) == sorted(1000 * n + i for n in range(4) for i in range(100))
    for n in range(4):
        mine = [value for value in received if value // 1000 == n]
        assert mine == sorted(mine)


def test_on_demand_iteratees_get_one_value_per_request():
    class OnDemand(Recorder):
        on_demand = True

    recorder = OnDemand()
    subscription = observe(sequence([1, 2])).subscribe(recorder)
    assert recorder.calls == []

    subscription.request()
    assert recorder.calls == [("next", 1)]

    subscription.request()
    subscription.request()
    assert recorder.calls == [("next", 1), ("next", 2), ("close", None)]
    assert subscription.closed

    subscription.request()
    assert recorder.calls[-1] == ("close", None)


def test_hot_sources_ignore_requests():
    subject = Subject[int]()
    recorder = Recorder()
    subject.subscribe(recorder).request()
    assert recorder.calls == []
