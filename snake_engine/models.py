"""Data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional

from .constants import (
    BONUS_DURATION, DIRECTIONS, GROWTH_PER_FOOD, OPPOSITES, SNAKE_START_LENGTH,
)


class Position(NamedTuple):
    x: int
    y: int

    def shifted(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def vector(self) -> tuple[int, int]:
        return DIRECTIONS[self.value]

    @property
    def opposite(self) -> "Direction":
        return Direction(OPPOSITES[self.value])


class FoodType(Enum):
    REGULAR = "regular"
    BONUS = "bonus"


class GameMode(Enum):
    CLASSIC = "classic"
    OBSTACLES = "obstacles"
    WALLS = "walls"
    COMPLEX = "complex"
    STAGES = "stages"


class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass
class Food:
    position: Position
    type: FoodType = FoodType.REGULAR
    spawn_time: Optional[float] = None
    bonus_duration: float = BONUS_DURATION

    @classmethod
    def spawn(cls, position: Position, food_type: FoodType, now: float) -> "Food":
        """Create food at ``position``; only bonus food records its spawn time."""
        spawn_time = now if food_type == FoodType.BONUS else None
        return cls(position=position, type=food_type, spawn_time=spawn_time)

    @property
    def is_bonus(self) -> bool:
        return self.type == FoodType.BONUS

    def is_expired(self, now: float) -> bool:
        if not self.is_bonus or self.spawn_time is None:
            return False
        return now - self.spawn_time >= self.bonus_duration

    def remaining_seconds(self, now: float) -> int:
        if not self.is_bonus or self.spawn_time is None:
            return 0
        elapsed = int(now - self.spawn_time)
        return max(0, int(self.bonus_duration) - elapsed)


class Snake:
    """
    A snake on the grid.

    body: list of Position from head at index 0 to tail at the end
    current_direction: the direction of the last move
    next_direction: buffered input, committed at the start of the next move
    """

    def __init__(self, start: Position, length: int = SNAKE_START_LENGTH,
                 direction: Direction = Direction.RIGHT):
        if length < SNAKE_START_LENGTH:
            raise ValueError(f"snake needs at least {SNAKE_START_LENGTH} segments, got {length}")
        dx, dy = direction.vector
        self.body: list[Position] = [start.shifted(-dx * i, -dy * i) for i in range(length)]
        self.current_direction = direction
        self.next_direction = direction

    @property
    def head(self) -> Position:
        return self.body[0]

    @property
    def tail(self) -> Position:
        return self.body[-1]

    def __len__(self) -> int:
        return len(self.body)

    def move(self):
        self.current_direction = self.next_direction
        dx, dy = self.current_direction.vector
        self.body.insert(0, self.head.shifted(dx, dy))
        self.body.pop()

    def grow(self):
        # Stacked tail copies unfold over the following moves
        self.body.extend([self.tail] * GROWTH_PER_FOOD)

    def collides_with_self(self) -> bool:
        return self.head in self.body[1:]


@dataclass
class HighScoreRecord:
    score: int
    mode: GameMode
    difficulty: Difficulty
    level: int = 1
    date: datetime = field(default_factory=datetime.now)
    initials: str = "AAA"

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "mode": self.mode.value,
            "difficulty": self.difficulty.value,
            "level": self.level,
            "date": self.date.isoformat(),
            "initials": self.initials,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HighScoreRecord":
        return cls(
            score=int(data["score"]),
            mode=GameMode(data["mode"]),
            difficulty=Difficulty(data["difficulty"]),
            level=int(data.get("level", 1)),
            date=datetime.fromisoformat(data["date"]),
            initials=data.get("initials", "AAA"),
        )
