import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator


@dataclass
class Elapsed:
    start: float
    seconds: float = 0.0

    @property
    def ms(self) -> float:
        return self.seconds * 1000.0


@contextmanager
def timing() -> Iterator[Elapsed]:
    elapsed = Elapsed(start=time.perf_counter())
    try:
        yield elapsed
    finally:
        elapsed.seconds = time.perf_counter() - elapsed.start
