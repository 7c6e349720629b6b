"""Core game state and logic."""

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .constants import (
    BONUS_EVERY, BONUS_POINTS, FOOD_MIN_HEAD_DISTANCE, FOOD_RADIUS,
    FOOD_SPAWN_ATTEMPTS, REGULAR_POINTS, SNAKE_RADIUS,
)
from .levels import Level, get_level
from .models import Difficulty, Food, FoodType, GameMode, Position, Snake
from .modes import MODE_POLICIES, clear_start_zone, lethal_boundary, resolve_boundary

logger = logging.getLogger(__name__)


class Outcome(Enum):
    IDLE = "idle"
    CONTINUE = "continue"
    ATE_FOOD = "ate_food"
    BONUS_EXPIRED = "bonus_expired"
    COLLIDED = "collided"
    LEVEL_COMPLETED = "level_completed"
    LEVEL_STARTED = "level_started"
    GAME_OVER = "game_over"


# Most significant first
_OUTCOME_RANK = (
    Outcome.GAME_OVER, Outcome.LEVEL_COMPLETED, Outcome.LEVEL_STARTED,
    Outcome.ATE_FOOD, Outcome.BONUS_EXPIRED, Outcome.CONTINUE, Outcome.IDLE,
)


@dataclass(frozen=True)
class TickResult:
    events: tuple[Outcome, ...] = (Outcome.CONTINUE,)
    food_type: Optional[FoodType] = None
    collision: Optional[str] = None

    @property
    def outcome(self) -> Outcome:
        for candidate in _OUTCOME_RANK:
            if candidate in self.events:
                return candidate
        return Outcome.CONTINUE

    @property
    def game_over(self) -> bool:
        return Outcome.GAME_OVER in self.events

    @property
    def level_completed(self) -> bool:
        return Outcome.LEVEL_COMPLETED in self.events


class GameState:
    def __init__(self, width: int, height: int, difficulty: Difficulty, mode: GameMode,
                 walls_enabled: bool = True):
        if width <= 0 or height <= 0:
            raise ValueError(f"grid size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.difficulty = difficulty
        self.mode = mode
        self.walls_enabled = walls_enabled
        self.snake = Snake(self.center)
        self.food: Optional[Food] = None
        self.obstacles: frozenset[Position] = frozenset()
        self.score = 0
        self.regular_eaten = 0
        self.level: Optional[Level] = None
        self.level_number = 1
        self.is_paused = False
        self.is_game_over = False

    @property
    def center(self) -> Position:
        return Position(self.width // 2, self.height // 2)

    def check_level_completion(self) -> bool:
        return self.level is not None and self.score >= self.level.target_score

    def __repr__(self):
        return (
            f"<GameState {self.width}x{self.height} mode={self.mode.value} "
            f"score={self.score} level={self.level_number} over={self.is_game_over}>"
        )


class GameEngine:
    """
    Drives one single-player session, one tick per update() call.

    The caller owns the timer. Randomness goes through ``rng`` and bonus expiry
    reads ``clock``, so a session is reproducible given a seed and a fake clock.
    """

    def __init__(self, width: int, height: int,
                 difficulty: Difficulty = Difficulty.MEDIUM,
                 mode: GameMode = GameMode.CLASSIC,
                 walls_enabled: bool = True, *,
                 rng: Optional[random.Random] = None,
                 seed: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic,
                 collision_radius: int = SNAKE_RADIUS,
                 food_radius: int = FOOD_RADIUS):
        self.state = GameState(width, height, difficulty, mode, walls_enabled)
        self.rng = rng if rng is not None else random.Random(seed)
        self.clock = clock
        self.collision_radius = collision_radius
        self.food_radius = food_radius

        self.policy = MODE_POLICIES[mode]
        self.boundary = resolve_boundary(mode, walls_enabled)
        self.state.walls_enabled = self.boundary is lethal_boundary

        if self.policy.staged:
            self.load_level(1)
        else:
            self._load_obstacles()
        self.spawn_food()

    # ── Public operations ──────────────────────────────────────────

    def update(self) -> TickResult:
        state = self.state
        if state.is_game_over or state.is_paused:
            return TickResult((Outcome.IDLE,))

        state.snake.move()

        if self.boundary(state, self.collision_radius):
            return self._end_game("wall")
        if self._hits_obstacle():
            return self._end_game("obstacle")
        if state.snake.collides_with_self():
            return self._end_game("self")

        events = []
        food_type = self._handle_food_collision()
        if food_type is not None:
            events.append(Outcome.ATE_FOOD)
        if self._handle_bonus_expiration():
            events.append(Outcome.BONUS_EXPIRED)

        if self.policy.staged and state.check_level_completion():
            logger.info("Level %d complete with score %d", state.level_number, state.score)
            events.append(Outcome.LEVEL_COMPLETED)

        return TickResult(tuple(events) or (Outcome.CONTINUE,), food_type=food_type)

    def toggle_pause(self) -> bool:
        self.state.is_paused = not self.state.is_paused
        return self.state.is_paused

    def advance_to_next_level(self) -> TickResult:
        """Load the next catalog level; with none left the run is over."""
        next_number = self.state.level_number + 1
        if self.policy.staged and get_level(next_number) is not None:
            self.load_level(next_number)
            self.spawn_food()
            return TickResult((Outcome.LEVEL_STARTED,))

        logger.info("No level after %d, ending game", self.state.level_number)
        self.state.is_game_over = True
        return TickResult((Outcome.GAME_OVER,))

    def load_level(self, number: int):
        level = get_level(number)
        if level is None:
            raise ValueError(f"no level {number}")
        state = self.state
        state.level = level
        state.level_number = number
        state.width, state.height = level.width, level.height
        state.snake = Snake(state.center)
        state.is_paused = False
        self._load_obstacles()
        logger.debug("Loaded level %d (%s), %d obstacles",
                     number, level.name, len(state.obstacles))

    def snapshot(self) -> dict:
        """Plain-data copy of the state for renderers."""
        state = self.state
        now = self.clock()
        food = None
        if state.food is not None:
            food = {
                "position": list(state.food.position),
                "type": state.food.type.value,
                "remaining": state.food.remaining_seconds(now),
            }
        level = None
        if state.level is not None:
            level = {
                "number": state.level.number,
                "name": state.level.name,
                "target_score": state.level.target_score,
            }
        return {
            "grid": [state.width, state.height],
            "mode": state.mode.value,
            "difficulty": state.difficulty.value,
            "walls_enabled": state.walls_enabled,
            "snake": [list(p) for p in state.snake.body],
            "direction": state.snake.current_direction.value,
            "food": food,
            "obstacles": [list(p) for p in sorted(state.obstacles)],
            "score": state.score,
            "regular_eaten": state.regular_eaten,
            "level_number": state.level_number,
            "level": level,
            "paused": state.is_paused,
            "game_over": state.is_game_over,
        }

    # ── Food ───────────────────────────────────────────────────────

    def spawn_food(self):
        state = self.state
        food_type = FoodType.REGULAR
        if state.regular_eaten > 0 and state.regular_eaten % BONUS_EVERY == 0:
            food_type = FoodType.BONUS
            state.regular_eaten = 0

        inset = self.food_radius + 1
        x_lo, x_hi = inset, state.width - inset
        y_lo, y_hi = inset, state.height - inset
        if x_hi <= x_lo:
            x_lo, x_hi = 0, state.width
        if y_hi <= y_lo:
            y_lo, y_hi = 0, state.height

        for _ in range(FOOD_SPAWN_ATTEMPTS):
            candidate = Position(self.rng.randrange(x_lo, x_hi), self.rng.randrange(y_lo, y_hi))
            if not (self._food_overlaps_snake(candidate)
                    or self._food_overlaps_obstacle(candidate)
                    or self._too_close_to_head(candidate)):
                break
        else:
            logger.debug("No clear food spot after %d attempts, using %s",
                         FOOD_SPAWN_ATTEMPTS, candidate)

        state.food = Food.spawn(candidate, food_type, self.clock())

    def _food_overlaps_snake(self, pos: Position) -> bool:
        reach = self.collision_radius + self.food_radius
        return any(abs(s.x - pos.x) < reach and abs(s.y - pos.y) < reach
                   for s in self.state.snake.body)

    def _food_overlaps_obstacle(self, pos: Position) -> bool:
        reach = self.food_radius * 2
        return any(abs(o.x - pos.x) < reach and abs(o.y - pos.y) < reach
                   for o in self.state.obstacles)

    def _too_close_to_head(self, pos: Position) -> bool:
        head = self.state.snake.head
        return (abs(head.x - pos.x) < FOOD_MIN_HEAD_DISTANCE
                or abs(head.y - pos.y) < FOOD_MIN_HEAD_DISTANCE)

    def _handle_food_collision(self) -> Optional[FoodType]:
        state = self.state
        if state.food is None:
            return None

        head, food = state.snake.head, state.food.position
        dx, dy = head.x - food.x, head.y - food.y
        reach = self.collision_radius + self.food_radius
        if dx * dx + dy * dy > reach * reach:
            return None

        eaten = state.food.type
        state.snake.grow()
        if eaten == FoodType.REGULAR:
            state.score += REGULAR_POINTS
            state.regular_eaten += 1
        else:
            state.score += BONUS_POINTS
        self.spawn_food()
        return eaten

    def _handle_bonus_expiration(self) -> bool:
        food = self.state.food
        if food is not None and food.is_expired(self.clock()):
            self.spawn_food()
            return True
        return False

    # ── Collisions ─────────────────────────────────────────────────

    def _hits_obstacle(self) -> bool:
        head = self.state.snake.head
        r = self.collision_radius
        return any(abs(head.x - o.x) <= r and abs(head.y - o.y) <= r
                   for o in self.state.obstacles)

    def _load_obstacles(self):
        obstacles = self.policy.obstacles(self.state, self.rng)
        self.state.obstacles = clear_start_zone(obstacles, self.state, self.collision_radius)

    def _end_game(self, reason: str) -> TickResult:
        self.state.is_game_over = True
        logger.info("Game over (%s) with score %d", reason, self.state.score)
        return TickResult((Outcome.COLLIDED, Outcome.GAME_OVER), collision=reason)
