from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from concurrent.futures import Future
from queue import Queue
from queue import ShutDown
from threading import Thread


class Scheduler(ABC):
    """Where the steps of driven computations run."""

    @abstractmethod
    def call(self, fn: Callable[[], None], /) -> Future[None]:
        """Run the function, settling the returned future with its outcome."""
        raise NotImplementedError

    def shutdown(self) -> None:
        pass

    @staticmethod
    def _run(future: Future[None], fn: Callable[[], None]) -> None:
        if not future.set_running_or_notify_cancel():
            return

        try:
            fn()
        except BaseException as exception:
            future.set_exception(exception)
        else:
            future.set_result(None)


class Inline(Scheduler):
    """Run each step right away, on the thread that made it runnable."""

    def call(self, fn: Callable[[], None], /) -> Future[None]:
        future = Future[None]()
        self._run(future, fn)
        return future


class Loop(Scheduler):
    """Run every step on one dedicated thread, in the order they arrive."""

    def __init__(self, *, name: str = "spawnio-loop"):
        self.__calls = Queue[tuple[Future[None], Callable[[], None]]]()
        self.__thread = Thread(target=self.__run, name=name, daemon=True)
        self.__thread.start()

    def call(self, fn: Callable[[], None], /) -> Future[None]:
        future = Future[None]()
        self.__calls.put((future, fn))
        return future

    def __run(self):
        while True:
            try:
                future, fn = self.__calls.get()
            except ShutDown:
                break

            try:
                self._run(future, fn)
            finally:
                self.__calls.task_done()

    def shutdown(self) -> None:
        """Stop the loop once the calls already queued have run."""
        self.__calls.shutdown()
        self.__thread.join()
