"""Small bodies that show how spawnio drives computations.

Each one can be run from the command line, for example:

    python -m spawnio run spawnio.samples.scenarios:recover
    python -m spawnio run --generator spawnio.samples.scenarios:incremented
"""

from spawnio import emit
from spawnio import gather
from spawnio import observe
from spawnio import sequence
from spawnio import sleep
from spawnio import subscribe
from spawnio.future import fulfilled
from spawnio.future import rejected


async def answer():
    """Return right away, without ever suspending."""
    return 42


def recover():
    """Keep the last value that arrived before an await failed."""
    awaitables = [
        lambda: fulfilled("A"),
        lambda: rejected(RuntimeError("boom")),
        lambda: fulfilled("C"),
    ]
    last = None
    try:
        for make in awaitables:
            last = yield make()
    except Exception:
        pass
    return last


async def incremented(*numbers: str):
    """Emit each pushed number plus one."""
    source = observe(sequence([int(n) for n in numbers] or [1, 2, 3]))
    async with subscribe(source) as pushed:
        async for value in pushed:
            await emit(value + 1)


async def napping(interval: str = "0.05"):
    """Sleep twice at once, then report how many naps were taken."""
    naps = await gather(sleep(float(interval)), sleep(float(interval)))
    return len(naps)
