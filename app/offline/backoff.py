import random
from typing import Callable


def backoff_delay(
    attempt: int,
    base: float,
    cap: float,
    rand: Callable[[], float] = random.random,
) -> float:
    """
    Exponential backoff with full jitter.

    Returns a delay uniformly drawn from [0, min(cap, base * 2 ** (attempt - 1))].
    attempt starts at 1.
    """
    if attempt < 1:
        return 0.0
    ceiling = min(cap, base * (2 ** (attempt - 1)))
    return ceiling * rand()
