"""Domain models for the Spanish Rain game."""

from .config import (
    INITIAL_LIVES, WORDS_TO_CLEAR, DEFAULT_SPEED, DEFAULT_MODE
)


class StageWord:
    """A vocabulary pair from the catalog."""

    __slots__ = ('spanish', 'korean')

    def __init__(self, spanish: str, korean: str):
        self.spanish = spanish
        self.korean = korean

    def __eq__(self, other):
        if not isinstance(other, StageWord):
            return NotImplemented
        return (self.spanish, self.korean) == (other.spanish, other.korean)

    def __hash__(self):
        return hash((self.spanish, self.korean))

    def __repr__(self):
        return f"StageWord({self.spanish!r}, {self.korean!r})"

    def to_dict(self) -> dict:
        return {'es': self.spanish, 'ko': self.korean}


class PoolEntry:
    """One slot of a weighted word pool. Weight is expressed by duplication."""

    __slots__ = ('spanish', 'korean', 'is_review')

    def __init__(self, spanish: str, korean: str, is_review: bool = False):
        self.spanish = spanish
        self.korean = korean
        self.is_review = is_review

    def __eq__(self, other):
        if not isinstance(other, PoolEntry):
            return NotImplemented
        return (self.spanish, self.korean, self.is_review) == \
            (other.spanish, other.korean, other.is_review)

    def __hash__(self):
        return hash((self.spanish, self.korean, self.is_review))

    def __repr__(self):
        return f"PoolEntry({self.spanish!r}, {self.korean!r}, is_review={self.is_review})"


class FallingWord:
    """A word currently on screen."""

    def __init__(self, id: int, spanish: str, korean: str, x: float, y: float,
                 speed: float, is_review: bool, spawn_time: float):
        self.id = id
        self.spanish = spanish
        self.korean = korean
        self.x = x
        self.y = y
        self.speed = speed
        self.matched = ''
        self.is_review = is_review
        self.spawn_time = spawn_time

    def display_text(self, mode: str) -> str:
        """The side of the pair shown to the player."""
        return self.spanish if mode == DEFAULT_MODE else self.korean

    def answer_text(self, mode: str) -> str:
        """The side of the pair the player must type."""
        return self.korean if mode == DEFAULT_MODE else self.spanish


class SessionState:
    """Mutable state of one stage session. Replaced wholesale on every start."""

    def __init__(self, world_id: int = 1, stage_num: int = 1, mode: str = DEFAULT_MODE,
                 start_time: float = 0.0, speed_modifier: float = 1.0,
                 is_review_mode: bool = False, current_speed: float = DEFAULT_SPEED):
        self.running = False
        self.paused = False
        self.game_over = False
        self.stage_cleared = False
        self.world_id = world_id
        self.stage_num = stage_num
        self.mode = mode
        self.score = 0
        self.lives = INITIAL_LIVES
        self.combo = 0
        self.max_combo = 0
        self.correct_count = 0
        self.wrong_count = 0
        self.target_correct = WORDS_TO_CLEAR
        self.start_time = start_time
        self.elapsed_time = 0.0
        self.last_spawn_time = None
        self.current_speed = current_speed
        self.speed_modifier = speed_modifier
        self.is_review_mode = is_review_mode

    @property
    def progress_ratio(self) -> float:
        if self.target_correct <= 0:
            return 1.0
        return self.correct_count / self.target_correct


class StageResult:
    """Best recorded result for a stage."""

    def __init__(self, stars: int, best_score: int, last_accuracy: int | None = None,
                 cleared_at: str | None = None):
        self.stars = stars
        self.best_score = best_score
        self.last_accuracy = last_accuracy
        self.cleared_at = cleared_at

    def is_beaten_by(self, stars: int, score: int) -> bool:
        """True if (stars, score) is strictly better: more stars, or equal stars and more score."""
        if stars != self.stars:
            return stars > self.stars
        return score > self.best_score

    def to_dict(self) -> dict:
        return {
            'stars': self.stars,
            'best_score': self.best_score,
            'last_accuracy': self.last_accuracy,
            'cleared_at': self.cleared_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StageResult':
        return cls(
            data.get('stars', 0),
            data.get('best_score', 0),
            data.get('last_accuracy'),
            data.get('cleared_at')
        )


class WrongWordRecord:
    """A word the player has missed, with how often."""

    def __init__(self, spanish: str, korean: str, wrong_count: int = 1,
                 last_wrong_at: str | None = None):
        self.spanish = spanish
        self.korean = korean
        self.wrong_count = wrong_count
        self.last_wrong_at = last_wrong_at

    def __repr__(self):
        return f"WrongWordRecord({self.spanish!r}, wrong_count={self.wrong_count})"

    def to_dict(self) -> dict:
        return {
            'es': self.spanish,
            'ko': self.korean,
            'wrong_count': self.wrong_count,
            'last_wrong_at': self.last_wrong_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'WrongWordRecord':
        return cls(
            data['es'],
            data.get('ko', ''),
            data.get('wrong_count', 1),
            data.get('last_wrong_at')
        )


class PlayerStats:
    """Aggregate totals across all sessions."""

    def __init__(self):
        self.total_score = 0
        self.total_games = 0
        self.total_correct = 0
        self.total_wrong = 0
        self.current_streak = 0
        self.last_play_date = None  # ISO date string

    def to_dict(self) -> dict:
        return {
            'total_score': self.total_score,
            'total_games': self.total_games,
            'total_correct': self.total_correct,
            'total_wrong': self.total_wrong,
            'current_streak': self.current_streak,
            'last_play_date': self.last_play_date
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PlayerStats':
        stats = cls()
        stats.total_score = data.get('total_score', 0)
        stats.total_games = data.get('total_games', 0)
        stats.total_correct = data.get('total_correct', 0)
        stats.total_wrong = data.get('total_wrong', 0)
        stats.current_streak = data.get('current_streak', 0)
        stats.last_play_date = data.get('last_play_date')
        return stats
