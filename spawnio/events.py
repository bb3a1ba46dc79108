from dataclasses import dataclass
from dataclasses import field
from typing import Any

from .event import Event


@dataclass(eq=False, kw_only=True)
class ComputationStarted(Event): ...


@dataclass(eq=False, kw_only=True)
class ComputationSuspended(Event):
    awaiting: Any = field(repr=False)


@dataclass(eq=False, kw_only=True)
class ComputationContinued(Event):
    value: Any = field(repr=False)


@dataclass(eq=False, kw_only=True)
class ComputationThrew(Event):
    exception: BaseException = field(repr=False)


@dataclass(eq=False, kw_only=True)
class ComputationResumed(Event): ...


@dataclass(eq=False, kw_only=True)
class ComputationCompleted(Event): ...


@dataclass(eq=False, kw_only=True)
class ComputationSucceeded(ComputationCompleted):
    value: Any = field(repr=False)


@dataclass(eq=False, kw_only=True)
class ComputationErrored(ComputationCompleted):
    exception: BaseException = field(repr=False)


@dataclass(eq=False, kw_only=True)
class ComputationCancelled(ComputationCompleted): ...


@dataclass(eq=False, kw_only=True)
class ComputationClosed(ComputationCompleted): ...


@dataclass(eq=False, kw_only=True)
class SubscriptionOpened(Event):
    observable: Any = field(repr=False)


@dataclass(eq=False, kw_only=True)
class ValueEmitted(Event):
    value: Any = field(repr=False)
