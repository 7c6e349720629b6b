"""Boundary and obstacle policies per game mode."""

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from .constants import OBSTACLE_DENSITY, START_RUNWAY, START_ZONE
from .levels import build_gapped_walls, get_level
from .models import GameMode, Position

if TYPE_CHECKING:
    from .game import GameState


# Boundary policies return True when the head has left the playfield for good.

def wrap_boundary(state: "GameState", radius: int) -> bool:
    head = state.snake.head
    wrapped = Position(head.x % state.width, head.y % state.height)
    if wrapped != head:
        state.snake.body[0] = wrapped
    return False


def lethal_boundary(state: "GameState", radius: int) -> bool:
    # The head is drawn over [x - radius, x + radius), so the right/bottom
    # edge is breached only when x + radius > size (not >=)
    head = state.snake.head
    return (head.x - radius < 0
            or head.y - radius < 0
            or head.x + radius > state.width
            or head.y + radius > state.height)


# Obstacle policies build the obstacle set for the current grid/level.

def no_obstacles(state: "GameState", rng: random.Random) -> frozenset[Position]:
    return frozenset()


def scattered_obstacles(state: "GameState", rng: random.Random) -> frozenset[Position]:
    walls = set()
    cx, cy = state.width // 2, state.height // 2
    count = (state.width * state.height) // OBSTACLE_DENSITY
    for _ in range(count):
        pos = Position(rng.randrange(state.width), rng.randrange(state.height))
        if abs(pos.x - cx) < START_ZONE and abs(pos.y - cy) < START_ZONE:
            continue
        walls.add(pos)
    return frozenset(walls)


def gapped_obstacles(state: "GameState", rng: random.Random) -> frozenset[Position]:
    return build_gapped_walls(state.width, state.height)


def catalog_obstacles(state: "GameState", rng: random.Random) -> frozenset[Position]:
    level = get_level(state.level_number)
    return level.obstacles if level else frozenset()


BoundaryPolicy = Callable[["GameState", int], bool]
ObstaclePolicy = Callable[["GameState", random.Random], frozenset]


@dataclass(frozen=True)
class ModePolicy:
    # None means the walls_enabled flag picks lethal or wrap
    boundary: Optional[BoundaryPolicy]
    obstacles: ObstaclePolicy
    staged: bool = False


MODE_POLICIES: dict[GameMode, ModePolicy] = {
    GameMode.CLASSIC: ModePolicy(wrap_boundary, no_obstacles),
    GameMode.OBSTACLES: ModePolicy(wrap_boundary, scattered_obstacles),
    GameMode.WALLS: ModePolicy(lethal_boundary, no_obstacles),
    GameMode.COMPLEX: ModePolicy(None, gapped_obstacles),
    GameMode.STAGES: ModePolicy(None, catalog_obstacles, staged=True),
}


def resolve_boundary(mode: GameMode, walls_enabled: bool) -> BoundaryPolicy:
    policy = MODE_POLICIES[mode]
    if policy.boundary is not None:
        return policy.boundary
    return lethal_boundary if walls_enabled else wrap_boundary


def clear_start_zone(obstacles: frozenset[Position], state: "GameState",
                     radius: int) -> frozenset[Position]:
    """Drop obstacles touching the snake's start footprint or its first few moves."""
    snake = state.snake
    dx, dy = snake.current_direction.vector
    keep_clear = list(snake.body) + [snake.head.shifted(dx * i, dy * i)
                                     for i in range(1, START_RUNWAY + 1)]
    return frozenset(
        o for o in obstacles
        if not any(abs(o.x - c.x) <= radius and abs(o.y - c.y) <= radius for c in keep_clear)
    )
