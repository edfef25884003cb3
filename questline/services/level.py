"""Level progression formula.

Quadratic progression: ``level = floor(sqrt(xp / BASE_XP)) + 1``. Each level costs more XP than
the previous one::

    0-99 XP -> Lv1, 100-399 -> Lv2, 400-899 -> Lv3, 900-1599 -> Lv4, ...

Computed with integer arithmetic; ``isqrt(xp // BASE_XP)`` equals ``floor(sqrt(xp / BASE_XP))``
for non-negative integers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

BASE_XP = 100


def compute_level(xp: int) -> int:
    """Map accumulated experience to a level. Negative input counts as 0; result is >= 1."""
    xp = max(int(xp), 0)
    return math.isqrt(xp // BASE_XP) + 1


def xp_for_level(level: int) -> int:
    """Total XP at which ``level`` is reached."""
    if level <= 1:
        return 0
    return BASE_XP * (level - 1) ** 2


@dataclass(frozen=True)
class LevelProgress:
    level: int
    xp: int
    level_floor_xp: int
    next_level_xp: int

    @property
    def xp_into_level(self) -> int:
        return self.xp - self.level_floor_xp

    @property
    def xp_to_next_level(self) -> int:
        return self.next_level_xp - self.xp


def level_progress(xp: int) -> LevelProgress:
    xp = max(int(xp), 0)
    level = compute_level(xp)
    return LevelProgress(
        level=level,
        xp=xp,
        level_floor_xp=xp_for_level(level),
        next_level_xp=xp_for_level(level + 1),
    )
