"""
Timing harness for the repeated read workloads.
"""
import time
from dataclasses import dataclass
from typing import Callable


def format_duration(seconds: float) -> str:
    if seconds >= 1:
        return f"{seconds:.3f}s"
    return f"{seconds * 1000:.3f}ms"


@dataclass
class TimingResult:
    """Wall-clock time of a timed loop."""

    total: float
    iterations: int

    @property
    def average(self) -> float:
        if self.iterations <= 0:
            return 0.0
        return self.total / self.iterations

    def __str__(self) -> str:
        return f"Total Time: {format_duration(self.total)}, Avg Time: {format_duration(self.average)}"


def run_timed(iterations: int, body: Callable[[int], None],
              clock: Callable[[], float] = time.perf_counter) -> TimingResult:
    """
    Call body(iteration) for each iteration and time the whole loop.

    An exception from body propagates immediately and no result is produced.
    """
    start = clock()
    for iteration in range(iterations):
        body(iteration)
    elapsed = max(0.0, clock() - start)
    return TimingResult(total=elapsed, iterations=iterations)
