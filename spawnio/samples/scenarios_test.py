from spawnio import async_generator
from spawnio import collect
from spawnio import spawn
from spawnio.samples.scenarios import answer
from spawnio.samples.scenarios import incremented
from spawnio.samples.scenarios import napping
from spawnio.samples.scenarios import recover


def test_answer_settles_synchronously():
    future = spawn(answer)
    assert future.done()
    assert future.result() == 42


def test_recover_keeps_the_last_value():
    assert spawn(recover).result() == "A"


def test_incremented():
    assert collect(async_generator(incremented)).result(timeout=1) == [2, 3, 4]
    assert collect(async_generator(lambda: incremented("9"))).result() == [10]


def test_napping():
    assert spawn(lambda: napping("0.01")).result(timeout=1) == 2
