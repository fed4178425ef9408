"""Configuration constants for the Spanish Rain game."""

# Canvas geometry (logical pixels)
CANVAS_WIDTH = 1000
CANVAS_HEIGHT = 700
DEATH_LINE_Y = 645       # Words reaching this y are missed
SPAWN_Y = -30            # Words start just above the viewport
SPAWN_MARGIN = 100       # Horizontal margin for spawn x

# Stage settings
WORDS_PER_STAGE = 10
WORDS_TO_CLEAR = 18      # Correct answers needed to clear a stage (review included)
MAX_ACTIVE_WORDS = 3
SPAWN_INTERVAL_MS = 2000
MIN_SPAWN_INTERVAL_MS = 800

# Lives and scoring
INITIAL_LIVES = 3
BASE_SCORE = 100
COMBO_MULTIPLIER = 0.1       # +10% per combo step
MAX_COMBO_MULTIPLIER = 3.0
SPEED_BONUS_THRESHOLD_MS = 3000
SPEED_BONUS_POINTS = 50

# Star thresholds (accuracy %)
THREE_STAR_ACCURACY = 100
TWO_STAR_ACCURACY = 90

# Review system
WRONG_WORD_FREQUENCY_BOOST = 2
MAX_STAGE_BOOST_COPIES = 10
OTHER_STAGE_MIN_COPIES = 1
OTHER_STAGE_MAX_COPIES = 3
REVIEW_POOL_SIZE = 10
REVIEW_STAGE_INTERVAL = 5
BOSS_STAGE_INTERVAL = 11     # 10 stages per episode + 1 boss
MIN_WRONG_FOR_REVIEW = 5

# Adaptive difficulty: (accuracy below, speed modifier), checked in order
ADAPTIVE_SPEED_STEPS = [
    (60, 0.50),
    (75, 0.65),
    (85, 0.80),
]

DEFAULT_SPEED = 0.5
FEEDBACK_DURATION_MS = 2500

# Game modes
MODE_ES_TO_KO = 'es-to-ko'   # Spanish shown, Korean typed
MODE_KO_TO_ES = 'ko-to-es'
MODES = (MODE_ES_TO_KO, MODE_KO_TO_ES)
DEFAULT_MODE = MODE_ES_TO_KO

# Persistence keys
STORAGE_KEYS = {
    'progress': 'spanish_rain_progress',
    'wrong_words': 'spanish_rain_wrong_words',
    'stats': 'spanish_rain_stats',
    'settings': 'spanish_rain_settings',
}


class WorldConfig:
    """Static configuration for one world."""

    def __init__(self, id: int, name: str, name_ko: str, stage_count: int,
                 base_speed: float, speed_increment: float, color: str):
        self.id = id
        self.name = name
        self.name_ko = name_ko
        self.stage_count = stage_count
        self.base_speed = base_speed
        self.speed_increment = speed_increment
        self.color = color

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'name_ko': self.name_ko,
            'stage_count': self.stage_count,
            'base_speed': self.base_speed,
            'speed_increment': self.speed_increment,
            'color': self.color
        }


WORLDS = (
    WorldConfig(1, 'Supervivencia', '생존·기초기능어', 33, 0.3, 0.015, '#4a9c6d'),
    WorldConfig(2, 'Personas', '사람·가족', 33, 0.35, 0.018, '#c9a227'),
    WorldConfig(3, 'Casa y Lugar', '집·위치', 33, 0.4, 0.02, '#a23b72'),
    WorldConfig(4, 'Comida y Compra', '음식·쇼핑', 33, 0.45, 0.02, '#2e86ab'),
    WorldConfig(5, 'Escuela y Trabajo', '학교·일상동사', 33, 0.5, 0.022, '#e07a5f'),
    WorldConfig(6, 'Ciudad y Tránsito', '도시·교통', 33, 0.55, 0.022, '#81b29a'),
    WorldConfig(7, 'Viaje y Problemas', '여행·문제해결', 33, 0.6, 0.025, '#f2cc8f'),
    WorldConfig(8, 'Salud', '건강·병원', 33, 0.65, 0.025, '#6d6875'),
    WorldConfig(9, 'Opinión y Emoción', '취미·감정·의견', 33, 0.7, 0.028, '#e63946'),
    WorldConfig(10, 'Sociedad y Naturaleza', '사회·자연·추상', 33, 0.75, 0.03, '#457b9d'),
)


def get_world_config(world_id: int) -> WorldConfig | None:
    """Get world configuration by id, or None for an unknown world."""
    if not isinstance(world_id, int) or world_id < 1 or world_id > len(WORLDS):
        return None
    return WORLDS[world_id - 1]


def get_stage_id(world_id: int, stage_num: int) -> str:
    """Build a "world-stage" identifier, e.g. "1-5"."""
    return f"{world_id}-{stage_num}"


def parse_stage_id(stage_id: str) -> tuple[int, int]:
    """Parse a "world-stage" identifier. Returns (world_id, stage_num).

    Raises ValueError for anything that is not two integers joined by '-'.
    """
    parts = stage_id.split('-')
    if len(parts) != 2:
        raise ValueError(f"Invalid stage id: {stage_id!r}")
    return int(parts[0]), int(parts[1])


def calculate_speed(world_id: int, stage_num: int, progress_ratio: float) -> float:
    """Fall speed for a stage at the given in-stage progress (0..1)."""
    world = get_world_config(world_id)
    if world is None:
        return DEFAULT_SPEED

    stage_bonus = (stage_num - 1) * 0.02
    progress_bonus = progress_ratio * world.speed_increment * 10
    return world.base_speed + stage_bonus + progress_bonus


def speed_modifier_for_accuracy(accuracy: float | None) -> float:
    """Adaptive speed modifier from the previous accuracy on a stage."""
    if accuracy is None:
        return 1.0
    for threshold, modifier in ADAPTIVE_SPEED_STEPS:
        if accuracy < threshold:
            return modifier
    return 1.0


def get_next_stage(world_id: int, stage_num: int) -> tuple[int, int] | None:
    """Stage following (world_id, stage_num), wrapping into the next world.

    Returns None after the last stage of the last world or for an unknown world.
    """
    world = get_world_config(world_id)
    if world is None:
        return None
    if stage_num < world.stage_count:
        return world_id, stage_num + 1
    if world_id < len(WORLDS):
        return world_id + 1, 1
    return None


def get_previous_stage(world_id: int, stage_num: int) -> tuple[int, int] | None:
    """Stage preceding (world_id, stage_num).

    None for the very first stage, or when the previous world is unknown.
    """
    if stage_num > 1:
        return world_id, stage_num - 1
    prev_world = get_world_config(world_id - 1)
    if prev_world is None:
        return None
    return prev_world.id, prev_world.stage_count
