"""Game constants."""

import os

from dotenv import load_dotenv

load_dotenv()

# Collision geometry: snake and food are drawn 2 * radius cells wide
SNAKE_RADIUS = 3
FOOD_RADIUS = 3

SNAKE_START_LENGTH = 3
GROWTH_PER_FOOD = 3

REGULAR_POINTS = 10
BONUS_POINTS = 50
BONUS_EVERY = 5
BONUS_DURATION = 5.0

FOOD_MIN_HEAD_DISTANCE = 10
FOOD_SPAWN_ATTEMPTS = 100

# Random scatter: one obstacle per this many cells
OBSTACLE_DENSITY = 60
START_ZONE = 5
START_RUNWAY = 3

DIFFICULTY_INTERVALS_MS = {"easy": 300, "medium": 200, "hard": 150}
SPEED_STEP_MS = 50
DEFAULT_SPEED_LEVEL = 2
MIN_TICK_INTERVAL_MS = 30

# Largest width or height a client may request
MAX_GRID_SIZE = 200

HIGHSCORE_TOP_N = 10
HIGHSCORE_MODE_LIMIT = 5

DIRECTIONS = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}
OPPOSITES = {"up": "down", "down": "up", "left": "right", "right": "left"}

HIGHSCORES_PATH = os.getenv("SNAKE_HIGHSCORES_PATH", "highscores.json")
HOST = os.getenv("SNAKE_HOST", "0.0.0.0")
PORT = int(os.getenv("SNAKE_PORT", "8765"))
