from .computation import Computation as Computation
from .computation import GeneratorComputation as GeneratorComputation
from .driver import spawn as spawn
from .emit import emit as emit
from .future import coerce as coerce
from .gather import gather as gather
from .generator import AsyncGenerator as AsyncGenerator
from .generator import async_generator as async_generator
from .generator import collect as collect
from .iteration import Iterable as Iterable
from .iteration import Iterator as Iterator
from .iteration import sequence as sequence
from .iteration import values as values
from .observation import Iteratee as Iteratee
from .observation import Observable as Observable
from .observation import Subject as Subject
from .observation import observe as observe
from .receive import subscribe as subscribe
from .sleep import sleep as sleep
from .spawnio import SpawnIO as SpawnIO
from .step import StepResult as StepResult
from .suspension import Suspension as Suspension
from .suspension import wait as wait
