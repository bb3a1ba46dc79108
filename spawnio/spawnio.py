import os
import tomllib
from collections.abc import Callable
from collections.abc import Iterable
from concurrent.futures import Future
from pathlib import Path
from queue import Queue
from typing import Any

from .driver import spawn
from .generator import AsyncGenerator
from .generator import async_generator
from .generator import collect
from .scheduler import Inline
from .scheduler import Loop
from .scheduler import Scheduler
from .stream import Stream

SCHEDULERS: dict[str, Callable[[], Scheduler]] = {"inline": Inline, "loop": Loop}


class SpawnIO:
    """Drive computations with configured scheduling and event reporting.

    Settings come from the SPAWNIO_SCHEDULER and SPAWNIO_TIMEOUT environment
    variables, then from [tool.spawnio] in the nearest pyproject.toml.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler | None = None,
        timeout: float | None = None,
    ):
        self.__scheduler = scheduler or self.__default_scheduler()
        self.__timeout = timeout if timeout is not None else self.__default_timeout()
        self.__stream = Stream()

    def __pyproject(self) -> Path | None:
        for path in [cwd := Path.cwd(), *cwd.parents]:
            candidate = path / "pyproject.toml"
            if candidate.is_file():
                return candidate
        return None

    def __config(self) -> dict:
        if pyproject := self.__pyproject():
            with pyproject.open("rb") as f:
                config = tomllib.load(f)
            return config.get("tool", {}).get("spawnio", {})
        return {}

    def __default_scheduler(self) -> Scheduler:
        name = os.environ.get("SPAWNIO_SCHEDULER")
        if not name:
            name = self.__config().get("scheduler", "inline")

        if name not in SCHEDULERS:
            raise ValueError(
                f"Scheduler must be one of {', '.join(map(repr, SCHEDULERS))}, "
                f"got: {name!r}"
            )
        return SCHEDULERS[name]()

    def __default_timeout(self) -> float | None:
        raw_timeout = os.environ.get("SPAWNIO_TIMEOUT")
        if not raw_timeout:
            raw_timeout = self.__config().get("timeout")
            if raw_timeout is None:
                return None

        try:
            timeout = float(raw_timeout)
        except (TypeError, ValueError):
            raise ValueError(
                f"Timeout must be a positive number, got: {raw_timeout!r}"
            ) from None
        if timeout <= 0:
            raise ValueError(f"Timeout must be a positive number, got: {raw_timeout!r}")
        return timeout

    @property
    def scheduler(self) -> Scheduler:
        return self.__scheduler

    @property
    def timeout(self) -> float | None:
        return self.__timeout

    def spawn[R](self, factory: Callable[[], Any], /) -> Future[R]:
        return spawn(factory, scheduler=self.__scheduler, stream=self.__stream)

    def async_generator[T](self, factory: Callable[[], Any], /) -> AsyncGenerator[T]:
        return async_generator(
            factory, scheduler=self.__scheduler, stream=self.__stream
        )

    def run[R](self, factory: Callable[[], Any], /) -> R:
        """Spawn and wait for the result within the configured timeout."""
        return self.spawn(factory).result(timeout=self.__timeout)

    def collect[T](self, factory: Callable[[], Any], /) -> list[T]:
        """Pull everything an async generator emits, waiting for the whole list."""
        generator = self.async_generator(factory)
        return collect(generator, scheduler=self.__scheduler).result(
            timeout=self.__timeout
        )

    def subscribe[T](self, types: Iterable[type[T]]) -> Queue[T]:
        """Subscribe to lifecycle events of everything this instance drives."""
        return self.__stream.subscribe(types)

    def unsubscribe(self, queue: Queue) -> None:
        self.__stream.unsubscribe(queue)

    def shutdown(self) -> None:
        """Shut down all components."""
        self.__scheduler.shutdown()
        self.__stream.shutdown()
