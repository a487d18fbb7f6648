"""Rounding shared by decision XP and progress rules."""
import math


def round_half_up(value: float) -> int:
    """2.5 -> 3, unlike the built-in round() which gives 2."""
    return int(math.floor(value + 0.5))
