import pytest

from .iteration import Finished
from .iteration import GeneratorIterator
from .iteration import Iterable
from .iteration import Iterator
from .iteration import sequence
from .iteration import values
from .step import StepResult


class Countdown(Iterable[int]):
    """A sequence that records how its iterators are closed."""

    def __init__(self, start: int):
        self.start = start
        self.closed = 0

    def iterator(self) -> Iterator[int]:
        countdown = self

        class CountdownIterator(Iterator[int]):
            def __init__(self):
                self.current = countdown.start

            def next(self) -> StepResult[int]:
                if self.current == 0:
                    return StepResult.finish("liftoff")
                self.current -= 1
                return StepResult.of(self.current + 1)

            def close(self) -> None:
                countdown.closed += 1

        return CountdownIterator()


def test_three_values_then_done_then_nothing():
    iterator = sequence(["a", "b", "c"]).iterator()
    assert iterator.next() == StepResult(done=False, value="a")
    assert iterator.next() == StepResult(done=False, value="b")
    assert iterator.next() == StepResult(done=False, value="c")
    assert iterator.next().done
    with pytest.raises(Finished):
        iterator.next()


def test_generator_return_value_comes_with_done():
    def generate():
        yield 1
        return "result"

    iterator = GeneratorIterator(generate())
    assert iterator.next() == StepResult.of(1)
    assert iterator.next() == StepResult.finish("result")


def test_values_discards_the_terminal_value():
    countdown = Countdown(3)
    assert list(values(countdown)) == [3, 2, 1]
    assert countdown.closed == 1


def test_values_closes_on_early_exit():
    countdown = Countdown(10)
    for value in values(countdown):
        if value == 8:
            break
    assert countdown.closed == 1


def test_values_closes_on_error():
    countdown = Countdown(10)
    with pytest.raises(RuntimeError):
        for _ in values(countdown):
            raise RuntimeError
    assert countdown.closed == 1


def test_close_is_idempotent_and_releases_the_generator():
    released = []

    def generate():
        try:
            yield 1
            yield 2
        finally:
            released.append(True)

    iterator = GeneratorIterator(generate())
    iterator.next()
    iterator.close()
    iterator.close()
    assert released == [True]
    with pytest.raises(Finished):
        iterator.next()


def test_throw_into_generators():
    def generate():
        try:
            yield 1
        except KeyError:
            yield "recovered"

    iterator = GeneratorIterator(generate())
    iterator.next()
    assert iterator.throw_into(KeyError()) == StepResult.of("recovered")


def test_throw_into_plain_iterators_propagates():
    iterator = sequence([1, 2]).iterator()
    with pytest.raises(ValueError, match="unhandled"):
        iterator.throw_into(ValueError("unhandled"))


def test_sequences_give_fresh_iterators():
    numbers = sequence([1, 2])
    assert list(values(numbers)) == [1, 2]
    assert list(values(numbers)) == [1, 2]
