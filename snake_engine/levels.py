"""Level obstacle patterns and the stage catalog.

Every pattern is a pure function of the grid size: calling it twice with the
same (width, height) yields the same set.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional

from .models import Position

Pattern = Callable[[int, int], frozenset]


def build_empty(width: int, height: int) -> frozenset[Position]:
    return frozenset()


def build_center_box(width: int, height: int) -> frozenset[Position]:
    walls = set()
    cx, cy = width // 2, height // 2
    for i in range(-3, 4):
        walls.add(Position(cx + i, cy - 3))
        walls.add(Position(cx + i, cy + 3))
        walls.add(Position(cx - 3, cy + i))
        walls.add(Position(cx + 3, cy + i))
    return frozenset(walls)


def build_cross(width: int, height: int) -> frozenset[Position]:
    walls = set()
    cx, cy = width // 2, height // 2
    for i in range(-5, 6):
        walls.add(Position(cx + i, cy))
        walls.add(Position(cx, cy + i))
    return frozenset(walls)


def build_maze(width: int, height: int) -> frozenset[Position]:
    walls = set()
    for y in range(5, height - 5, 3):
        for x in range(4, width - 4, 6):
            walls.add(Position(x, y))
            walls.add(Position(x + 1, y))
    return frozenset(walls)


def build_corner_boxes(width: int, height: int, size: int = 4) -> frozenset[Position]:
    walls = set()
    for ox in (2, width - 2 - size):
        for oy in (2, height - 2 - size):
            for dx in range(size):
                for dy in range(size):
                    walls.add(Position(ox + dx, oy + dy))
    return frozenset(walls)


def build_tunnel(width: int, height: int) -> frozenset[Position]:
    walls = set()
    rows = (height // 3, 2 * height // 3)
    for x in range(5, width - 5):
        # 5 cells of wall, 3 cells of gap
        if x % 8 < 5:
            for y in rows:
                walls.add(Position(x, y))
    return frozenset(walls)


def build_spiral(width: int, height: int) -> frozenset[Position]:
    walls = set()
    cx, cy = width // 2, height // 2
    for r in range(3, min(width, height) // 2 - 2, 3):
        for angle in range(0, 270, 15):
            rad = math.radians(angle)
            x = cx + int(r * math.cos(rad))
            y = cy + int(r * math.sin(rad))
            if 0 <= x < width and 0 <= y < height:
                walls.add(Position(x, y))
    return frozenset(walls)


def build_columns(width: int, height: int) -> frozenset[Position]:
    walls = set()
    for x in range(5, width - 5, 5):
        for y in range(3, height - 3):
            if y < height // 3 or y > 2 * height // 3:
                walls.add(Position(x, y))
    return frozenset(walls)


def build_champion(width: int, height: int) -> frozenset[Position]:
    return build_cross(width, height) | build_corner_boxes(width, height)


def build_gapped_walls(width: int, height: int) -> frozenset[Position]:
    """Four wall lines inset from the edges, each split by a centered gap."""
    walls = set()
    margin = max(2, width // 10)
    gap = max(3, min(width, height) // 4)

    top, bottom = margin, height - 1 - margin
    left, right = margin, width - 1 - margin

    def gapped(start: int, end: int) -> list[int]:
        gap_start = (start + end) // 2 - gap // 2
        return [i for i in range(start, end) if not gap_start <= i < gap_start + gap]

    for x in gapped(margin + 1, width - margin - 1):
        walls.add(Position(x, top))
        walls.add(Position(x, bottom))
    for y in gapped(margin + 1, height - margin - 1):
        walls.add(Position(left, y))
        walls.add(Position(right, y))
    return frozenset(walls)


@dataclass(frozen=True)
class Level:
    number: int
    name: str
    target_score: int
    width: int
    height: int
    tick_interval_ms: int
    pattern: Pattern = build_empty

    @property
    def obstacles(self) -> frozenset[Position]:
        return self.pattern(self.width, self.height)


LEVELS: tuple[Level, ...] = (
    Level(1, "Beginner", 50, 15, 15, 300),
    Level(2, "Easy Street", 100, 18, 18, 250, build_center_box),
    Level(3, "Cross Road", 150, 20, 20, 220, build_cross),
    Level(4, "The Maze", 200, 22, 22, 200, build_maze),
    Level(5, "Corners", 250, 22, 22, 180, build_corner_boxes),
    Level(6, "Tunnel", 300, 25, 15, 170, build_tunnel),
    Level(7, "Spiral", 350, 24, 24, 150, build_spiral),
    Level(8, "Columns", 400, 25, 20, 140, build_columns),
    Level(9, "Champion", 500, 28, 28, 120, build_champion),
)
TOTAL_LEVELS = len(LEVELS)


def get_level(number: int) -> Optional[Level]:
    """Return level ``number`` (1-based), or None past the end of the catalog."""
    if 1 <= number <= TOTAL_LEVELS:
        return LEVELS[number - 1]
    return None
