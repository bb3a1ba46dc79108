import os
import threading
from threading import Thread
from time import sleep

import pytest


def pytest_sessionstart(session):
    """Ensure the test suite always exits."""
    timeout = float(session.config.getini("timeout")) + 5
    Thread(target=lambda: sleep(timeout) or os._exit(1), daemon=True).start()


def describe(thread: Thread) -> str:
    if thread.name.startswith("spawnio-loop"):
        return f"  - {thread.name} (a Loop scheduler that was never shut down)"
    if isinstance(thread, threading.Timer):
        return f"  - {thread.name} (a sleep that neither fired nor was cancelled)"
    return f"  - {thread.name} ({'daemon' if thread.daemon else 'non-daemon'})"


@pytest.fixture(autouse=True)
def check_thread_cleanup():
    """Fail tests that leave loops, timers or other threads running."""
    before = set(threading.enumerate())
    yield
    leftover = [t for t in threading.enumerate() if t not in before]

    # A sleep's timer exits right after it settles its future.
    for thread in leftover:
        thread.join(timeout=1)
    leftover = [t for t in leftover if t.is_alive()]

    if leftover:
        pytest.fail(
            f"Test left {len(leftover)} thread(s) running:\n"
            + "\n".join(map(describe, leftover))
        )
