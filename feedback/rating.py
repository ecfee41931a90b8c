"""Running rating aggregate."""
from typing import Iterable, Tuple


def fold_rating(average: float, count: int, rating: int) -> Tuple[float, int]:
    """Fold one more rating into a running mean.

    The mean is kept at full precision; rounding is a display concern.

    Returns:
        Tuple of (new average, new count)
    """
    return (average * count + rating) / (count + 1), count + 1


def mean_rating(ratings: Iterable[int]) -> Tuple[float, int]:
    """Fold a sequence of ratings from an empty aggregate."""
    average, count = 0.0, 0
    for rating in ratings:
        average, count = fold_rating(average, count, rating)
    return average, count
