"""Word catalog: per-world stage word lists loaded from JSON resources."""

import asyncio
import json
import logging
from pathlib import Path

import requests

from .config import (
    WORLDS, BOSS_STAGE_INTERVAL, REVIEW_STAGE_INTERVAL, get_world_config
)
from .models import StageWord

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = 10


def world_file_name(world_id: int) -> str:
    return f"world{world_id}.json"


def fetch_world_data(source: str | Path, world_id: int) -> dict:
    """Read one world's raw data from a directory or an http(s) base URL."""
    source = str(source)
    if source.startswith(('http://', 'https://')):
        url = f"{source.rstrip('/')}/{world_file_name(world_id)}"
        response = requests.get(url, timeout=FETCH_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()

    path = Path(source) / world_file_name(world_id)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def parse_world_data(data: dict) -> list[dict]:
    """Validate a world resource and convert it to [{category, words}] per stage."""
    if not isinstance(data, dict) or not isinstance(data.get('stages'), list):
        raise ValueError("World data must be an object with a 'stages' list")

    stages = []
    for index, stage in enumerate(data['stages']):
        if not isinstance(stage, dict):
            raise ValueError(f"Stage {index + 1} is not an object")
        words = [
            StageWord(w['es'], w['ko'])
            for w in stage.get('words', [])
            if isinstance(w, dict) and w.get('es') and w.get('ko')
        ]
        category = stage.get('category')
        stages.append({
            'category': category.strip() if isinstance(category, str) else None,
            'words': words
        })
    return stages


class WordCatalog:
    """Stage word lists for every world that loaded successfully."""

    def __init__(self):
        self._word_data: dict[int, list[dict]] = {}
        self._is_loaded = False

    async def load_all(self, source: str | Path, world_ids: list[int] | None = None) -> bool:
        """Load every world concurrently. Failed worlds are skipped.

        Returns False only when no world at all could be loaded.
        """
        if world_ids is None:
            world_ids = [w.id for w in WORLDS]

        results = await asyncio.gather(
            *(self._load_world(source, world_id) for world_id in world_ids),
            return_exceptions=True
        )

        loaded = 0
        for world_id, result in zip(world_ids, results):
            if isinstance(result, Exception):
                logger.warning(f"World {world_id} failed to load: {type(result).__name__}: {result}")
            else:
                loaded += 1

        if loaded == 0:
            logger.error("Word data failed to load: no world available")
            return False

        logger.info(f"Loaded {loaded}/{len(world_ids)} worlds")
        return True

    async def _load_world(self, source: str | Path, world_id: int) -> int:
        data = await asyncio.to_thread(fetch_world_data, source, world_id)
        self.load_world_data(world_id, data)
        return world_id

    def load_world_data(self, world_id: int, data: dict) -> None:
        """Install already-parsed data for a world. Raises ValueError on bad shape."""
        self._word_data[world_id] = parse_world_data(data)
        self._is_loaded = True

    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def loaded_worlds(self) -> list[int]:
        return sorted(self._word_data)

    def get_stage_data(self, world_id: int, stage_num: int) -> dict | None:
        stages = self._word_data.get(world_id)
        if not stages or stage_num < 1 or stage_num > len(stages):
            return None
        return stages[stage_num - 1]

    def get_stage_words(self, world_id: int, stage_num: int) -> list[StageWord]:
        """Words of a stage; empty when the world or stage has no data."""
        if not self._is_loaded:
            logger.warning("Word data not loaded yet")
            return []

        stage = self.get_stage_data(world_id, stage_num)
        if stage is None:
            logger.warning(f"No word data for stage {world_id}-{stage_num}")
            return []
        return list(stage['words'])

    def get_stage_category(self, world_id: int, stage_num: int) -> str:
        stage = self.get_stage_data(world_id, stage_num)
        if stage and stage['category']:
            return stage['category']

        world = get_world_config(world_id)
        if world is None:
            return f"Stage {stage_num}"
        return f"{world.name_ko} {stage_num}"

    def is_boss_stage(self, world_id: int, stage_num: int) -> bool:
        """The last stage of every episode block is a boss."""
        return stage_num > 0 and stage_num % BOSS_STAGE_INTERVAL == 0

    def is_review_stage(self, world_id: int, stage_num: int) -> bool:
        """Periodic review stage. Boss stages take precedence and are never review stages."""
        if self.is_boss_stage(world_id, stage_num):
            return False
        return stage_num > 0 and stage_num % REVIEW_STAGE_INTERVAL == 0

    def get_total_word_count(self) -> int:
        return sum(len(stage['words']) for stages in self._word_data.values() for stage in stages)

    def get_all_world_words(self, world_id: int) -> list[dict]:
        """Every word of a world tagged with its stage number."""
        result = []
        for index, stage in enumerate(self._word_data.get(world_id, [])):
            for word in stage['words']:
                result.append({'es': word.spanish, 'ko': word.korean, 'stage': index + 1})
        return result
