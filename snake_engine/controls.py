"""Input-layer helpers: the guarded direction setter and the driver cadence."""

from typing import Optional, Union

from .constants import (
    DEFAULT_SPEED_LEVEL, DIFFICULTY_INTERVALS_MS, MIN_TICK_INTERVAL_MS, SPEED_STEP_MS,
)
from .levels import Level
from .models import Difficulty, Direction, Snake


def steer(snake: Snake, direction: Union[Direction, str]) -> bool:
    """Buffer ``direction`` for the next move unless it reverses the snake.

    Every input source (keys, swipes, network messages) should go through here.
    Returns True if the direction was accepted.
    """
    if isinstance(direction, str):
        direction = Direction(direction.lower())
    if direction == snake.current_direction.opposite:
        return False
    snake.next_direction = direction
    return True


def tick_interval(difficulty: Difficulty, speed_level: int = DEFAULT_SPEED_LEVEL,
                  level: Optional[Level] = None) -> int:
    """Milliseconds between update() calls."""
    if level is not None:
        base = level.tick_interval_ms
    else:
        base = DIFFICULTY_INTERVALS_MS[difficulty.value]
    adjustment = (speed_level - DEFAULT_SPEED_LEVEL) * SPEED_STEP_MS
    return max(MIN_TICK_INTERVAL_MS, base - adjustment)
