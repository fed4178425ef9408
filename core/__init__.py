from .models import (
    StageWord, PoolEntry, FallingWord, SessionState,
    StageResult, WrongWordRecord, PlayerStats
)
from .interfaces import KeyValueBackend, StorageError
from .progress import ProgressStore, MemoryBackend
from .catalog import WordCatalog
from .pools import WordPoolBuilder, pick_random_word
from .matcher import normalize, is_prefix_match, answers_match
from .engine import SessionEngine
from .config import (
    WORLDS, INITIAL_LIVES, MAX_ACTIVE_WORDS, WORDS_TO_CLEAR,
    MODE_ES_TO_KO, MODE_KO_TO_ES,
    get_world_config, get_stage_id, parse_stage_id
)

__all__ = [
    'StageWord', 'PoolEntry', 'FallingWord', 'SessionState',
    'StageResult', 'WrongWordRecord', 'PlayerStats',
    'KeyValueBackend', 'StorageError',
    'ProgressStore', 'MemoryBackend',
    'WordCatalog',
    'WordPoolBuilder', 'pick_random_word',
    'normalize', 'is_prefix_match', 'answers_match',
    'SessionEngine',
    'WORLDS', 'INITIAL_LIVES', 'MAX_ACTIVE_WORDS', 'WORDS_TO_CLEAR',
    'MODE_ES_TO_KO', 'MODE_KO_TO_ES',
    'get_world_config', 'get_stage_id', 'parse_stage_id'
]
