"""Player progress persistence: stage results, wrong words, stats and settings."""

import logging
from datetime import date, timedelta

from .config import (
    STORAGE_KEYS, WORLDS, DEFAULT_MODE, REVIEW_POOL_SIZE,
    get_stage_id, get_previous_stage, get_world_config
)
from .interfaces import KeyValueBackend
from .models import StageResult, WrongWordRecord, PlayerStats
from .utils import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'mode': DEFAULT_MODE,
    'sound_enabled': True,
    'music_enabled': False
}


class MemoryBackend(KeyValueBackend):
    """In-memory backend. Nothing survives the process."""

    def __init__(self):
        self.data = {}

    def get(self, key: str):
        return self.data.get(key)

    def set(self, key: str, value) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class ProgressStore:
    """Progress records on top of a key-value backend.

    Backend failures are caught here, logged, and treated as no-ops: reads
    fall back to empty defaults and writes report False.
    """

    def __init__(self, backend: KeyValueBackend, today=None, now_iso=None):
        self.backend = backend
        self._today = today or date.today
        self._now_iso = now_iso or utc_now_iso

    def _get(self, key: str):
        try:
            return self.backend.get(key)
        except Exception as e:
            logger.warning(f"Storage read failed ({key}): {e}")
            return None

    def _set(self, key: str, value) -> bool:
        try:
            self.backend.set(key, value)
            return True
        except Exception as e:
            logger.error(f"Storage write failed ({key}): {e}")
            return False

    def init(self) -> None:
        """Seed default records on first run."""
        if self._get(STORAGE_KEYS['progress']) is None:
            self._set(STORAGE_KEYS['progress'], {})
        if self._get(STORAGE_KEYS['wrong_words']) is None:
            self._set(STORAGE_KEYS['wrong_words'], [])
        if self._get(STORAGE_KEYS['stats']) is None:
            self._set(STORAGE_KEYS['stats'], PlayerStats().to_dict())
        if self._get(STORAGE_KEYS['settings']) is None:
            self._set(STORAGE_KEYS['settings'], dict(DEFAULT_SETTINGS))

    # Stage results

    def _load_progress(self) -> dict:
        progress = self._get(STORAGE_KEYS['progress'])
        return progress if isinstance(progress, dict) else {}

    def get_stage_result(self, stage_id: str) -> StageResult | None:
        data = self._load_progress().get(stage_id)
        if not data:
            return None
        return StageResult.from_dict(data)

    def save_stage_result(self, stage_id: str, stars: int, score: int,
                          accuracy: int | None = None) -> bool:
        """Store a result only if it beats the existing one (stars first, then score).

        Returns True if the stored record changed.
        """
        progress = self._load_progress()
        existing = progress.get(stage_id)
        if existing and not StageResult.from_dict(existing).is_beaten_by(stars, score):
            return False

        progress[stage_id] = StageResult(stars, score, accuracy, self._now_iso()).to_dict()
        return self._set(STORAGE_KEYS['progress'], progress)

    def is_stage_unlocked(self, world_id: int, stage_num: int) -> bool:
        """First stage is always open; others need the preceding stage cleared.

        Stages of an unknown world are never open.
        """
        if get_world_config(world_id) is None:
            logger.warning(f"Unknown world {world_id}")
            return False
        previous = get_previous_stage(world_id, stage_num)
        if previous is None:
            return True
        result = self.get_stage_result(get_stage_id(*previous))
        return result is not None and result.stars >= 1

    def get_current_progress(self) -> tuple[int, int]:
        """Last unlocked stage, scanning worlds and stages in order."""
        last_unlocked = (1, 1)
        for world in WORLDS:
            for stage_num in range(1, world.stage_count + 1):
                if not self.is_stage_unlocked(world.id, stage_num):
                    return last_unlocked
                last_unlocked = (world.id, stage_num)
        return last_unlocked

    # Wrong words

    def _load_wrong_words(self) -> list[dict]:
        words = self._get(STORAGE_KEYS['wrong_words'])
        return words if isinstance(words, list) else []

    def record_wrong_word(self, spanish: str, korean: str) -> None:
        words = self._load_wrong_words()
        now = self._now_iso()
        for entry in words:
            if entry.get('es') == spanish:
                entry['wrong_count'] = entry.get('wrong_count', 0) + 1
                entry['last_wrong_at'] = now
                break
        else:
            words.append(WrongWordRecord(spanish, korean, 1, now).to_dict())
        self._set(STORAGE_KEYS['wrong_words'], words)

    def record_correct_word(self, spanish: str) -> None:
        """Decay a word's wrong count; the record is dropped once it reaches zero."""
        words = self._load_wrong_words()
        for i, entry in enumerate(words):
            if entry.get('es') == spanish:
                entry['wrong_count'] = entry.get('wrong_count', 0) - 1
                if entry['wrong_count'] <= 0:
                    del words[i]
                self._set(STORAGE_KEYS['wrong_words'], words)
                return

    def get_wrong_words(self) -> list[WrongWordRecord]:
        return [WrongWordRecord.from_dict(w) for w in self._load_wrong_words() if w.get('es')]

    def get_words_for_review(self, limit: int = REVIEW_POOL_SIZE) -> list[WrongWordRecord]:
        """Most-missed words first."""
        words = sorted(self.get_wrong_words(), key=lambda w: w.wrong_count, reverse=True)
        return words[:limit]

    # Stats

    def get_stats(self) -> PlayerStats:
        data = self._get(STORAGE_KEYS['stats'])
        return PlayerStats.from_dict(data) if isinstance(data, dict) else PlayerStats()

    def update_stats(self, score: int, correct: int, wrong: int) -> PlayerStats:
        """Accumulate totals and maintain the daily play streak."""
        stats = self.get_stats()
        stats.total_score += score
        stats.total_games += 1
        stats.total_correct += correct
        stats.total_wrong += wrong

        today = self._today()
        last_play = stats.last_play_date
        if last_play is None:
            stats.current_streak = 1
        elif last_play == (today - timedelta(days=1)).isoformat():
            stats.current_streak += 1
        elif last_play != today.isoformat():
            stats.current_streak = 1
        stats.last_play_date = today.isoformat()

        self._set(STORAGE_KEYS['stats'], stats.to_dict())
        return stats

    # Settings

    def _load_settings(self) -> dict:
        settings = self._get(STORAGE_KEYS['settings'])
        return settings if isinstance(settings, dict) else {}

    def get_setting(self, key: str):
        settings = self._load_settings()
        return settings.get(key, DEFAULT_SETTINGS.get(key))

    def set_setting(self, key: str, value) -> None:
        settings = self._load_settings()
        settings[key] = value
        self._set(STORAGE_KEYS['settings'], settings)

    def clear_all(self) -> None:
        """Delete every record and reseed defaults. Not recoverable."""
        for key in STORAGE_KEYS.values():
            try:
                self.backend.delete(key)
            except Exception as e:
                logger.error(f"Storage delete failed ({key}): {e}")
        self.init()
