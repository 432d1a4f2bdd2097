import random
from typing import List, Optional, TypeVar

T = TypeVar("T")


def fisher_yates_shuffle(items: List[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Shuffles `items` in place and returns it.
    Every permutation is equally likely.
    """
    rng = rng or random
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items
