from dataclasses import dataclass


@dataclass(frozen=True)
class StepResult[T]:
    """The outcome of advancing a computation or an iterator by one step.

    When `done` is true the value is the final (return) value, and the
    producer must not be advanced again.
    """

    done: bool
    value: T

    @classmethod
    def of(cls, value: T) -> "StepResult[T]":
        return cls(done=False, value=value)

    @classmethod
    def finish(cls, value: T = None) -> "StepResult[T]":
        return cls(done=True, value=value)
