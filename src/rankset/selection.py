"""Pair selection strategies for pairwise voting.

Every strategy looks only at the active subset (entries that are not
locked) and returns a pair of positions into the live entry list, or None
when fewer than two active entries remain. Randomness always comes from the
``random.Random`` passed in, so a seeded generator gives a reproducible
sequence of pairs.
"""

import math
import random
import sys
from collections.abc import Sequence
from enum import Enum

from src.rankset.constants import EQUAL_PAIR_PROBABILITY
from src.rankset.models import Entry


Pair = tuple[int, int]


class PairStrategy(str, Enum):
    """Named pair selection strategies.

    - RANDOM: two distinct active entries, uniformly
    - MIN: one entry among the least-voted, partner uniformly
    - EQUAL: two entries with identical percentages
    - NEAREST: the two entries with the closest percentages
    - MIN_EQUAL: coin flip between EQUAL (falling back to MIN) and MIN
    """

    RANDOM = "random"
    MIN = "min"
    EQUAL = "equal"
    NEAREST = "nearest"
    MIN_EQUAL = "min_equal"


def active_indices(entries: Sequence[Entry]) -> list[int]:
    """Positions of all unlocked entries, in collection order."""
    return [i for i, entry in enumerate(entries) if not entry.locked]


def _draw_other(rng: random.Random, active: list[int], first_pos: int) -> int:
    """Draw a position from ``active`` other than ``first_pos``.

    Draws from the n-1 remaining slots and shifts past the excluded one, so
    the two picks are distinct without any retry loop.
    """
    second_pos = rng.randrange(len(active) - 1)
    if second_pos >= first_pos:
        second_pos += 1
    return active[second_pos]


def min_votes(entries: Sequence[Entry]) -> list[int]:
    """Positions of active entries sharing the minimum vote count.

    Args:
        entries: Entries to inspect.

    Returns:
        All tied positions in collection order; empty when nothing is active.
    """
    minimum: int | None = None
    result: list[int] = []

    for i, entry in enumerate(entries):
        if entry.locked:
            continue
        if minimum is None or entry.votes < minimum:
            minimum = entry.votes
            result = [i]
        elif entry.votes == minimum:
            result.append(i)

    return result


def random_pair(entries: Sequence[Entry], rng: random.Random) -> Pair | None:
    """Pick two distinct active entries uniformly at random.

    Args:
        entries: Entries to choose from.
        rng: Random source.

    Returns:
        Pair of positions, or None with fewer than two active entries.
    """
    active = active_indices(entries)
    if len(active) < 2:
        return None

    first_pos = rng.randrange(len(active))
    return active[first_pos], _draw_other(rng, active, first_pos)


def min_pair(entries: Sequence[Entry], rng: random.Random) -> Pair | None:
    """Pick a least-voted entry and pair it with any other active entry.

    Guarantees that at least one member of the pair is maximally
    under-sampled.

    Args:
        entries: Entries to choose from.
        rng: Random source.

    Returns:
        Pair of positions, or None with fewer than two active entries.
    """
    active = active_indices(entries)
    if len(active) < 2:
        return None

    first = rng.choice(min_votes(entries))
    return first, _draw_other(rng, active, active.index(first))


def equal_pair(entries: Sequence[Entry], rng: random.Random) -> Pair | None:
    """Find two active entries with the same win percentage.

    The active subset is shuffled before scanning so repeated calls on a
    tied set do not keep returning the same pair. Zero-vote entries never
    tie because their percentage is NaN.

    Args:
        entries: Entries to choose from.
        rng: Random source.

    Returns:
        First tied pair found, or None if no two active entries tie.
    """
    active = active_indices(entries)
    if len(active) < 2:
        return None

    rng.shuffle(active)
    percentages = [entries[i].percentage() for i in active]

    for a in range(len(active)):
        for b in range(a + 1, len(active)):
            if abs(percentages[b] - percentages[a]) < sys.float_info.epsilon:
                return active[a], active[b]
    return None


def nearest_pair(entries: Sequence[Entry], rng: random.Random) -> Pair | None:
    """Find the two active entries with the closest win percentages.

    Scans the shuffled active subset; among equally close pairs the first
    one found wins. A pair involving a zero-vote entry has an undefined
    distance and only wins when no pair has a defined one.

    Args:
        entries: Entries to choose from.
        rng: Random source.

    Returns:
        Closest pair, or None with fewer than two active entries.
    """
    active = active_indices(entries)
    if len(active) < 2:
        return None

    rng.shuffle(active)
    percentages = [entries[i].percentage() for i in active]

    best: Pair | None = None
    best_distance = math.inf
    for a in range(len(active)):
        for b in range(a + 1, len(active)):
            distance = abs(percentages[b] - percentages[a])
            if math.isnan(distance):
                distance = math.inf
            if best is None or distance < best_distance:
                best = (active[a], active[b])
                best_distance = distance
    return best


def min_equal_pair(entries: Sequence[Entry], rng: random.Random) -> Pair | None:
    """Alternate between closing ties and filling in under-sampled entries.

    On each call a coin flip decides between ``equal_pair`` (falling back to
    ``min_pair`` when nothing ties) and ``min_pair`` directly.

    Args:
        entries: Entries to choose from.
        rng: Random source.

    Returns:
        Selected pair, or None with fewer than two active entries.
    """
    if rng.random() < EQUAL_PAIR_PROBABILITY:
        pair = equal_pair(entries, rng)
        if pair is not None:
            return pair
    return min_pair(entries, rng)


STRATEGIES = {
    PairStrategy.RANDOM: random_pair,
    PairStrategy.MIN: min_pair,
    PairStrategy.EQUAL: equal_pair,
    PairStrategy.NEAREST: nearest_pair,
    PairStrategy.MIN_EQUAL: min_equal_pair,
}
