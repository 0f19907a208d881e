"""Small numeric helpers shared by the services."""

import math


def round_half_up(value: float) -> int:
    """Rounds .5 towards +infinity (2.5 → 3, -2.5 → -2), unlike round()."""
    return math.floor(value + 0.5)
