import importlib
from functools import partial
from queue import ShutDown
from threading import Thread
from typing import Annotated

from typer import Argument
from typer import Option
from typer import Typer

from .event import Event
from .spawnio import SpawnIO

app = Typer()


def load(target: str):
    """Import a function named like 'package.module:function'."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Target must look like 'module:function', got: '{target}'")
    module = importlib.import_module(module_name)
    return getattr(module, attribute)


@app.command()
def run(
    target: Annotated[
        str,
        Argument(
            help="The function whose body to drive, as 'module:function'.",
            metavar="MODULE:FUNCTION",
        ),
    ],
    args: Annotated[
        list[str] | None,
        Argument(help="String arguments passed to the function."),
    ] = None,
    generator: Annotated[
        bool,
        Option(help="Drive it as an async generator and print each value."),
    ] = False,
    events: Annotated[
        bool,
        Option(help="Print every lifecycle event as it happens."),
    ] = False,
):
    """Drive a function's body and print what it produces."""
    fn = load(target)
    factory = partial(fn, *(args or []))
    spawnio = SpawnIO()
    printer = None
    if events:
        queue = spawnio.subscribe({Event})

        def print_events():
            while True:
                try:
                    print(queue.get())
                except ShutDown:
                    break

        printer = Thread(target=print_events, name="spawnio-events")
        printer.start()

    try:
        if generator:
            values = spawnio.async_generator(factory)
            while not (step := values.next().result(spawnio.timeout)).done:
                print(step.value)
        else:
            print(spawnio.run(factory))
    finally:
        spawnio.shutdown()
        if printer is not None:
            printer.join()


@app.command()
def config():
    """Show the configuration spawnio resolves from the environment."""
    spawnio = SpawnIO()
    try:
        print(f"scheduler: {type(spawnio.scheduler).__name__.lower()}")
        print(f"timeout: {spawnio.timeout if spawnio.timeout is not None else 'none'}")
    finally:
        spawnio.shutdown()


if __name__ == "__main__":
    app()
