"""Ranked high-score history persisted as JSON."""

import json
import logging
import os
from typing import Optional

from .constants import HIGHSCORE_MODE_LIMIT, HIGHSCORE_TOP_N, HIGHSCORES_PATH
from .models import GameMode, HighScoreRecord

logger = logging.getLogger(__name__)


def normalize_initials(initials: Optional[str]) -> str:
    initials = (initials or "").strip().upper()[:3]
    return initials or "AAA"


def rank(records: list[HighScoreRecord], count: int) -> list[HighScoreRecord]:
    # sorted() is stable, so equal scores keep insertion order
    return sorted(records, key=lambda r: r.score, reverse=True)[:count]


class HighScoreStore:
    """
    Past runs in insertion order, loaded from and saved to a JSON file.

    Used by the presentation layer around game over; the engine never touches it.
    """

    def __init__(self, path: str = HIGHSCORES_PATH):
        self.path = path
        self.records: list[HighScoreRecord] = self.load()

    def load(self) -> list[HighScoreRecord]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            return [HighScoreRecord.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable high scores in %s: %s", self.path, e)
            return []

    def save(self, records: Optional[list[HighScoreRecord]] = None):
        records = list(self.records if records is None else records)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in records], f, indent=2)
        self.records = records

    def add(self, record: HighScoreRecord):
        record.initials = normalize_initials(record.initials)
        self.save(self.records + [record])

    def get_top_scores(self, count: int = HIGHSCORE_TOP_N) -> list[HighScoreRecord]:
        return rank(self.records, count)

    def get_top_scores_by_mode(self, mode: GameMode,
                               count: int = HIGHSCORE_MODE_LIMIT) -> list[HighScoreRecord]:
        return rank([r for r in self.records if r.mode == mode], count)

    def is_high_score(self, score: int, mode: GameMode) -> bool:
        top = self.get_top_scores_by_mode(mode, HIGHSCORE_TOP_N)
        return len(top) < HIGHSCORE_TOP_N or score > top[-1].score
