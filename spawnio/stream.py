from collections.abc import Iterable
from contextlib import suppress
from itertools import chain
from queue import Queue
from queue import ShutDown
from threading import Lock
from typing import Any


class Stream:
    """Local distribution of lifecycle events to subscribed queues."""

    def __init__(self):
        self.__lock = Lock()
        self.__subscriptions: dict[type, set[Queue[Any]]] = {}

    def subscribe[T](self, types: Iterable[type[T]]) -> Queue[T]:
        queue = Queue[T]()
        with self.__lock:
            for type in types:
                self.__subscriptions.setdefault(type, set()).add(queue)
        return queue

    def unsubscribe(self, queue: Queue) -> None:
        """Unsubscribe a queue from all event types."""
        with self.__lock:
            for type, subscriptions in list(self.__subscriptions.items()):
                subscriptions.discard(queue)
                if not subscriptions:
                    del self.__subscriptions[type]
        queue.shutdown(immediate=True)

    def publish(self, event: Any) -> None:
        """Publish an event to all subscribers of its type or its base types."""
        with self.__lock:
            subscribers = {
                subscription
                for type, subscriptions in self.__subscriptions.items()
                for subscription in subscriptions
                if isinstance(event, type)
            }
        for subscriber in subscribers:
            with suppress(ShutDown):
                subscriber.put(event)

    def shutdown(self) -> None:
        with self.__lock:
            subscribers = set(chain.from_iterable(self.__subscriptions.values()))
            self.__subscriptions.clear()
        for subscriber in subscribers:
            subscriber.shutdown()
