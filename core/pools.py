"""Weighted word pools for stage sessions.

Weight is expressed by duplication: an entry that appears three times is
three times as likely to be drawn by a uniform pick over the pool.
"""

import logging
import random

from .catalog import WordCatalog
from .config import (
    WRONG_WORD_FREQUENCY_BOOST, MAX_STAGE_BOOST_COPIES,
    OTHER_STAGE_MIN_COPIES, OTHER_STAGE_MAX_COPIES,
    REVIEW_POOL_SIZE, MIN_WRONG_FOR_REVIEW, BOSS_STAGE_INTERVAL
)
from .models import PoolEntry, StageWord
from .progress import ProgressStore

logger = logging.getLogger(__name__)


def stage_boost_copies(wrong_count: int) -> int:
    """Extra copies of a missed word that belongs to the current stage."""
    return min(wrong_count * WRONG_WORD_FREQUENCY_BOOST, MAX_STAGE_BOOST_COPIES)


def other_stage_copies(wrong_count: int) -> int:
    """Copies of a missed word folded in from another stage."""
    return min(max(OTHER_STAGE_MIN_COPIES, wrong_count), OTHER_STAGE_MAX_COPIES)


def pick_random_word(pool: list[PoolEntry], exclude=(), rng: random.Random | None = None) -> PoolEntry | None:
    """Uniform pick over pool entries whose Spanish form is not excluded."""
    excluded = set(exclude)
    available = [entry for entry in pool if entry.spanish not in excluded]
    if not available:
        return None
    return (rng or random).choice(available)


class WordPoolBuilder:
    """Builds per-stage pools from the catalog and the wrong-word history."""

    def __init__(self, catalog: WordCatalog, store: ProgressStore):
        self.catalog = catalog
        self.store = store

    def _boosted(self, words: list[StageWord], wrong_by_spanish: dict) -> list[PoolEntry]:
        pool = [PoolEntry(w.spanish, w.korean, False) for w in words]
        for word in words:
            record = wrong_by_spanish.get(word.spanish)
            if record:
                pool.extend(
                    PoolEntry(word.spanish, word.korean, True)
                    for _ in range(stage_boost_copies(record.wrong_count))
                )
        return pool

    def create_word_pool(self, world_id: int, stage_num: int) -> list[PoolEntry]:
        """Stage words once each, boosted by wrong-word history, plus missed words from other stages."""
        stage_words = self.catalog.get_stage_words(world_id, stage_num)
        wrong_words = self.store.get_wrong_words()
        wrong_by_spanish = {w.spanish: w for w in wrong_words}

        pool = self._boosted(stage_words, wrong_by_spanish)

        stage_set = {w.spanish for w in stage_words}
        for record in wrong_words:
            if record.spanish in stage_set:
                continue
            pool.extend(
                PoolEntry(record.spanish, record.korean, True)
                for _ in range(other_stage_copies(record.wrong_count))
            )
        return pool

    def create_review_pool(self) -> list[PoolEntry]:
        """Pool of the most-missed words. Empty if there are too few to review."""
        review_words = self.store.get_words_for_review(REVIEW_POOL_SIZE)
        if len(review_words) < MIN_WRONG_FOR_REVIEW:
            logger.info(f"Not enough wrong words for review ({len(review_words)}/{MIN_WRONG_FOR_REVIEW})")
            return []

        pool = []
        for record in review_words:
            pool.extend(
                PoolEntry(record.spanish, record.korean, True)
                for _ in range(1 + record.wrong_count)
            )
        return pool

    def boss_recall_stages(self, stage_num: int, recall_window: int | None = None) -> range:
        """Stages recalled by a boss: the episode block before it (or recall_window stages), plus itself."""
        window = recall_window if recall_window and recall_window > 0 else BOSS_STAGE_INTERVAL - 1
        first = max(1, stage_num - window)
        return range(first, stage_num + 1)

    def create_boss_pool(self, world_id: int, stage_num: int,
                         recall_window: int | None = None) -> list[PoolEntry]:
        """Every distinct word of the recalled stages, boosted by wrong-word history."""
        words = []
        seen = set()
        for recalled in self.boss_recall_stages(stage_num, recall_window):
            stage = self.catalog.get_stage_data(world_id, recalled)
            if stage is None:
                continue
            for word in stage['words']:
                if word.spanish not in seen:
                    seen.add(word.spanish)
                    words.append(word)

        wrong_by_spanish = {w.spanish: w for w in self.store.get_wrong_words()}
        return self._boosted(words, wrong_by_spanish)
