from __future__ import annotations

from enum import IntEnum


class Element(IntEnum):
    NONE = 0
    WATER = 1
    EARTH = 2
    HOLY = 3
    FIRE = 4


ADVANTAGE_MULTIPLIER = 1.25
DISADVANTAGE_MULTIPLIER = 0.75
NEUTRAL_MULTIPLIER = 1.0

# attacker element -> the element it beats
STRONG_AGAINST = {
    Element.WATER: Element.FIRE,
    Element.FIRE: Element.EARTH,
    Element.EARTH: Element.WATER,
}


def element_multiplier(attacker: int, defender: int) -> float:
    """Damage multiplier of an attacking element against a defending one.

    Holy, unknown and unset (0) elements are always neutral, as are self-matchups.
    """
    try:
        attacking = Element(int(attacker))
        defending = Element(int(defender))
    except ValueError:
        return NEUTRAL_MULTIPLIER
    if STRONG_AGAINST.get(attacking) == defending:
        return ADVANTAGE_MULTIPLIER
    if STRONG_AGAINST.get(defending) == attacking:
        return DISADVANTAGE_MULTIPLIER
    return NEUTRAL_MULTIPLIER
