from __future__ import annotations

import random


def roll_die(sides: int, rng: random.Random) -> int:
    return rng.randint(1, max(1, int(sides)))


def rand_range(low: int, high: int, rng: random.Random) -> int:
    """Inclusive integer draw; a degenerate band returns its lower bound."""
    low, high = int(low), int(high)
    if high <= low:
        return low
    return rng.randint(low, high)


def percent_roll(rng: random.Random) -> float:
    """Uniform draw on [0, 100)."""
    return rng.random() * 100


def roll_4d6_drop_lowest(rng: random.Random) -> tuple[int, list[int]]:
    """Roll 4d6, drop the lowest, return (total, rolls)."""
    rolls = [rng.randint(1, 6) for _ in range(4)]
    return sum(rolls) - min(rolls), rolls


def stat_roll(rng: random.Random, minimum: int = 3, maximum: int = 20) -> int:
    total, _ = roll_4d6_drop_lowest(rng)
    return max(minimum, min(maximum, total))
