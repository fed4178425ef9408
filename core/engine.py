"""Session engine: the per-stage game state machine.

The host owns the frame pump and calls ``tick(now)`` once per animation
frame while a session is running. Input arrives through synchronous calls
(``handle_key_input``, ``set_input``, ``check_answer``). Nothing here
blocks or spawns threads.
"""

import logging
import math
import random

from .catalog import WordCatalog
from .config import (
    CANVAS_WIDTH, DEATH_LINE_Y, SPAWN_Y, SPAWN_MARGIN,
    MAX_ACTIVE_WORDS, SPAWN_INTERVAL_MS, MIN_SPAWN_INTERVAL_MS,
    BASE_SCORE, COMBO_MULTIPLIER, MAX_COMBO_MULTIPLIER,
    SPEED_BONUS_THRESHOLD_MS, SPEED_BONUS_POINTS,
    THREE_STAR_ACCURACY, TWO_STAR_ACCURACY,
    DEFAULT_SPEED, DEFAULT_MODE, MODES, FEEDBACK_DURATION_MS,
    get_world_config, get_stage_id, calculate_speed, speed_modifier_for_accuracy
)
from .matcher import answers_match, is_prefix_match
from .models import FallingWord, PoolEntry, SessionState
from .pools import WordPoolBuilder, pick_random_word
from .progress import ProgressStore
from .utils import monotonic_ms

logger = logging.getLogger(__name__)

PHASE_IDLE = 'idle'
PHASE_RUNNING = 'running'
PHASE_PAUSED = 'paused'
PHASE_STAGE_CLEAR = 'stage_clear'
PHASE_GAME_OVER = 'game_over'


def combo_multiplier(combo: int) -> float:
    return min(1 + (combo - 1) * COMBO_MULTIPLIER, MAX_COMBO_MULTIPLIER)


def score_for_answer(combo: int, answer_ms: float) -> int:
    """Points for a correct answer at the given combo, answered answer_ms after spawn."""
    # round() first so 2.3 * 100 == 229.99999999999997 still floors to 230
    points = math.floor(round(BASE_SCORE * combo_multiplier(combo), 6))
    if answer_ms < SPEED_BONUS_THRESHOLD_MS:
        points += SPEED_BONUS_POINTS
    return points


def calculate_accuracy(correct: int, wrong: int) -> int:
    """Accuracy in whole percent, rounding halves up. 100 when nothing was attempted."""
    total = correct + wrong
    if total == 0:
        return 100
    return math.floor(100 * correct / total + 0.5)


def stars_for_accuracy(accuracy: int) -> int:
    if accuracy >= THREE_STAR_ACCURACY:
        return 3
    if accuracy >= TWO_STAR_ACCURACY:
        return 2
    return 1


def spawn_interval_ms(progress_ratio: float) -> float:
    """Spawns speed up as the stage progresses, down to a floor."""
    return max(MIN_SPAWN_INTERVAL_MS, SPAWN_INTERVAL_MS * (1 - progress_ratio * 0.5))


class SessionEngine:
    """Owns one SessionState at a time plus the words on screen."""

    def __init__(self, catalog: WordCatalog, store: ProgressStore, clock=None,
                 rng: random.Random | None = None, pool_builder: WordPoolBuilder | None = None,
                 boss_recall_window: int | None = None):
        self.catalog = catalog
        self.store = store
        self.pools = pool_builder or WordPoolBuilder(catalog, store)
        self.clock = clock or monotonic_ms
        self.rng = rng or random.Random()
        self.boss_recall_window = boss_recall_window

        self.state = SessionState()
        self.active_words: list[FallingWord] = []
        self.word_pool: list[PoolEntry] = []
        self.current_input = ''
        self.next_word_id = 1
        self.feedbacks: list[dict] = []
        self.last_frame_time = 0.0
        self.last_event: dict | None = None

        # Host callbacks
        self.on_state_update = None
        self.on_stage_clear = None
        self.on_game_over = None

    @property
    def phase(self) -> str:
        if self.state.stage_cleared:
            return PHASE_STAGE_CLEAR
        if self.state.game_over:
            return PHASE_GAME_OVER
        if not self.state.running:
            return PHASE_IDLE
        if self.state.paused:
            return PHASE_PAUSED
        return PHASE_RUNNING

    # Lifecycle

    def start(self, world_id: int, stage_num: int, mode: str = DEFAULT_MODE,
              custom_pool: list[PoolEntry] | None = None) -> None:
        """Start a fresh session. A custom pool makes it a review run."""
        if mode not in MODES:
            logger.warning(f"Unknown mode {mode!r}, using {DEFAULT_MODE}")
            mode = DEFAULT_MODE

        is_review_mode = custom_pool is not None
        speed_modifier = 1.0
        if not is_review_mode:
            previous = self.store.get_stage_result(get_stage_id(world_id, stage_num))
            if previous is not None:
                speed_modifier = speed_modifier_for_accuracy(previous.last_accuracy)

        world = get_world_config(world_id)
        if world is None:
            logger.warning(f"Unknown world {world_id}, using default speed {DEFAULT_SPEED}")

        now = self.clock()
        self.state = SessionState(
            world_id=world_id,
            stage_num=stage_num,
            mode=mode,
            start_time=now,
            speed_modifier=speed_modifier,
            is_review_mode=is_review_mode,
            current_speed=world.base_speed if world else DEFAULT_SPEED
        )
        self.state.running = True

        self.active_words = []
        self.current_input = ''
        self.next_word_id = 1
        self.feedbacks = []
        self.last_event = None
        self.word_pool = self._select_pool(world_id, stage_num, custom_pool)
        if not self.word_pool:
            logger.warning(f"Stage {get_stage_id(world_id, stage_num)} has no words to spawn")

        self.last_frame_time = now

        label = 'Review' if is_review_mode else f"Stage {get_stage_id(world_id, stage_num)}"
        logger.info(f"{label} started (mode: {mode}, speed x{speed_modifier}, pool: {len(self.word_pool)})")

    def _select_pool(self, world_id: int, stage_num: int,
                     custom_pool: list[PoolEntry] | None) -> list[PoolEntry]:
        """custom > boss > review > normal; empty special pools fall back to the normal pool."""
        pool = []
        if custom_pool:
            pool = list(custom_pool)
        elif custom_pool is None and self.catalog.is_boss_stage(world_id, stage_num):
            pool = self.pools.create_boss_pool(world_id, stage_num, self.boss_recall_window)
        elif custom_pool is None and self.catalog.is_review_stage(world_id, stage_num):
            pool = self.pools.create_review_pool()

        if not pool:
            pool = self.pools.create_word_pool(world_id, stage_num)
        return pool

    def pause(self) -> None:
        if not self.state.running or self.state.paused:
            return
        self.state.paused = True
        logger.info("Session paused")

    def resume(self) -> None:
        if not self.state.running or not self.state.paused:
            return
        self.state.paused = False
        # Paused time does not count as elapsed or as frame delta
        self.last_frame_time = self.clock()
        logger.info("Session resumed")

    def stop(self) -> None:
        """Stop immediately. Words still on screen are discarded."""
        self.state.running = False
        self.state.paused = False
        self.active_words = []
        self.current_input = ''
        logger.info("Session stopped")

    # Frame update

    def tick(self, now: float) -> None:
        """Advance the session to timestamp now (milliseconds, same clock as self.clock)."""
        if not self.state.running or self.state.paused:
            return

        delta_ms = max(0.0, now - self.last_frame_time)
        self.last_frame_time = now
        self.state.elapsed_time += delta_ms

        self.update(delta_ms / 1000, now)
        self.feedbacks = [f for f in self.feedbacks if now - f['time'] < FEEDBACK_DURATION_MS]

        if self.on_state_update:
            self.on_state_update(self.get_display_state())

    def update(self, delta_seconds: float, now: float) -> None:
        state = self.state
        state.current_speed = calculate_speed(
            state.world_id, state.stage_num, state.progress_ratio
        ) * state.speed_modifier

        self.try_spawn_word(now)
        self.update_words(delta_seconds, now)

        if state.running and state.correct_count >= state.target_correct:
            self.handle_stage_clear()

    def try_spawn_word(self, now: float) -> FallingWord | None:
        state = self.state
        if len(self.active_words) >= MAX_ACTIVE_WORDS:
            return None
        if state.last_spawn_time is not None and \
                now - state.last_spawn_time < spawn_interval_ms(state.progress_ratio):
            return None

        on_screen = [w.spanish for w in self.active_words]
        entry = pick_random_word(self.word_pool, on_screen, self.rng)
        if entry is None:
            return None

        x = SPAWN_MARGIN + self.rng.random() * (CANVAS_WIDTH - SPAWN_MARGIN * 2)
        word = FallingWord(
            id=self.next_word_id,
            spanish=entry.spanish,
            korean=entry.korean,
            x=x,
            y=SPAWN_Y,
            speed=state.current_speed,
            is_review=entry.is_review,
            spawn_time=now
        )
        self.next_word_id += 1
        self.active_words.append(word)
        state.last_spawn_time = now
        return word

    def update_words(self, delta_seconds: float, now: float) -> None:
        """Move words down (60 fps baseline) and miss those past the death line."""
        for word in list(self.active_words):
            word.y += word.speed * delta_seconds * 60
            if word.y >= DEATH_LINE_Y:
                self.active_words.remove(word)
                self.handle_missed_word(word, now)
                if not self.state.running:
                    break

    # Input

    def handle_key_input(self, key: str) -> None:
        if not self.state.running or self.state.paused:
            return

        if key == 'Backspace':
            self.current_input = self.current_input[:-1]
            self.update_matched_state()
        elif key == 'Enter':
            self.check_answer()
        elif len(key) == 1:
            self.current_input += key
            self.update_matched_state()

    def set_input(self, value: str) -> None:
        """Replace the whole input buffer (IME composition, paste)."""
        if not self.state.running or self.state.paused:
            return
        self.current_input = value
        self.update_matched_state()

    def update_matched_state(self) -> None:
        for word in self.active_words:
            answer = word.answer_text(self.state.mode)
            word.matched = self.current_input if is_prefix_match(answer, self.current_input) else ''

    def check_answer(self) -> bool | None:
        """Submit the input buffer. Returns True/False for a match, None if nothing was submitted."""
        if not self.state.running or self.state.paused:
            return None
        if self.current_input.strip() == '':
            return None

        now = self.clock()
        matched = None
        for word in self.active_words:
            if answers_match(word.answer_text(self.state.mode), self.current_input):
                matched = word
                break

        if matched is not None:
            self.active_words.remove(matched)
            self.handle_correct_answer(matched, now)
        else:
            self.handle_wrong_answer(now)

        self.current_input = ''
        self.update_matched_state()
        return matched is not None

    # Outcomes

    def handle_correct_answer(self, word: FallingWord, now: float) -> int:
        state = self.state
        state.combo += 1
        state.max_combo = max(state.max_combo, state.combo)

        points = score_for_answer(state.combo, now - word.spawn_time)
        state.score += points
        state.correct_count += 1

        self.store.record_correct_word(word.spanish)
        logger.debug(f"Correct: {word.spanish} (+{points}, combo {state.combo})")
        return points

    def handle_wrong_answer(self, now: float) -> None:
        state = self.state
        state.combo = 0
        state.wrong_count += 1

        if self.active_words:
            hints = '  |  '.join(
                f"{w.display_text(state.mode)} = {w.answer_text(state.mode)}"
                for w in self.active_words
            )
            self.feedbacks.append({'text': hints, 'time': now})
        logger.debug(f"Wrong answer: {self.current_input!r}")

    def handle_missed_word(self, word: FallingWord, now: float) -> None:
        state = self.state
        state.lives = max(0, state.lives - 1)
        state.combo = 0
        state.wrong_count += 1

        self.store.record_wrong_word(word.spanish, word.korean)
        self.feedbacks.append({'text': f"{word.spanish} = {word.korean}", 'time': now})
        logger.debug(f"Missed: {word.spanish} (lives {state.lives})")

        if state.lives <= 0:
            self.handle_game_over()

    def calculate_accuracy(self) -> int:
        return calculate_accuracy(self.state.correct_count, self.state.wrong_count)

    def calculate_stars(self) -> int:
        return stars_for_accuracy(self.calculate_accuracy())

    def handle_stage_clear(self) -> dict:
        state = self.state
        state.stage_cleared = True
        self.stop()

        accuracy = self.calculate_accuracy()
        stars = stars_for_accuracy(accuracy)
        if not state.is_review_mode:
            self.store.save_stage_result(
                get_stage_id(state.world_id, state.stage_num), stars, state.score, accuracy
            )
        self.store.update_stats(state.score, state.correct_count, state.wrong_count)

        event = {
            'type': PHASE_STAGE_CLEAR,
            'world_id': state.world_id,
            'stage_num': state.stage_num,
            'stars': stars,
            'score': state.score,
            'max_combo': state.max_combo,
            'accuracy': accuracy,
            'elapsed_time': state.elapsed_time,
            'is_review_mode': state.is_review_mode
        }
        self.last_event = event
        logger.info(f"{'Review' if state.is_review_mode else 'Stage'} clear: {stars} stars, score {state.score}")

        if self.on_stage_clear:
            self.on_stage_clear(event)
        return event

    def handle_game_over(self) -> dict:
        state = self.state
        state.game_over = True
        self.stop()

        self.store.update_stats(0, state.correct_count, state.wrong_count)

        event = {
            'type': PHASE_GAME_OVER,
            'world_id': state.world_id,
            'stage_num': state.stage_num,
            'score': state.score,
            'correct_count': state.correct_count,
            'wrong_count': state.wrong_count,
            'is_review_mode': state.is_review_mode
        }
        self.last_event = event
        logger.info(f"Game over at {get_stage_id(state.world_id, state.stage_num)} (score {state.score})")

        if self.on_game_over:
            self.on_game_over(event)
        return event

    # Snapshot

    def get_display_state(self) -> dict:
        state = self.state
        progress = 100
        if state.target_correct > 0:
            progress = min(round(state.correct_count / state.target_correct * 100), 100)
        return {
            'phase': self.phase,
            'world_id': state.world_id,
            'stage_num': state.stage_num,
            'mode': state.mode,
            'score': state.score,
            'lives': state.lives,
            'combo': state.combo,
            'max_combo': state.max_combo,
            'correct_count': state.correct_count,
            'wrong_count': state.wrong_count,
            'progress': progress,
            'current_input': self.current_input,
            'is_running': state.running,
            'is_paused': state.paused,
            'is_game_over': state.game_over,
            'is_review_mode': state.is_review_mode,
            'elapsed_time': state.elapsed_time,
            'active_words': [
                {
                    'id': w.id,
                    'text': w.display_text(state.mode),
                    'x': w.x,
                    'y': w.y,
                    'matched': w.matched,
                    'is_review': w.is_review
                }
                for w in self.active_words
            ],
            'feedbacks': [f['text'] for f in self.feedbacks],
            'last_event': self.last_event
        }
