import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .directions import Direction, pick_random
from .fakeout import FakeOutController, difficulty_for
from .timers import TimerScheduler
from .trap import TrapController

logger = logging.getLogger(__name__)


class RoundState(str, Enum):
    IDLE = 'idle'
    AWAITING_SWIPE = 'awaiting_swipe'
    FAKING = 'faking'
    PENDING_FAILURE_FEINT = 'pending_failure_feint'
    AWAITING_GUESS = 'awaiting_guess'
    REVEALING_SUCCESS = 'revealing_success'
    REVEALING_FAILURE = 'revealing_failure'


# A fake arrow is only a lie on screen; the round still takes swipes.
SWIPEABLE_STATES = (RoundState.AWAITING_SWIPE, RoundState.FAKING)


@dataclass
class GameSettings:
    trap_min_streak: int = 3
    trap_probability: float = 0.2
    fake_min_streak: int = 5
    fake_delay_min: float = 0.8
    fake_delay_max: float = 2.5
    feint_delay: float = 0.5
    reveal_delay: float = 0.1
    success_pause: float = 0.5
    celebration_every: int = 10

    @classmethod
    def from_config(cls, config) -> 'GameSettings':
        return cls(
            trap_min_streak=int(config.get('TRAP_MIN_STREAK', 3)),
            trap_probability=float(config.get('TRAP_PROBABILITY', 0.2)),
            fake_min_streak=int(config.get('FAKE_MIN_STREAK', 5)),
            fake_delay_min=float(config.get('FAKE_DELAY_MIN_SEC', 0.8)),
            fake_delay_max=float(config.get('FAKE_DELAY_MAX_SEC', 2.5)),
            feint_delay=float(config.get('FEINT_DELAY_SEC', 0.5)),
            reveal_delay=float(config.get('TRAP_REVEAL_DELAY_SEC', 0.1)),
            success_pause=float(config.get('TRAP_SUCCESS_PAUSE_SEC', 0.5)),
            celebration_every=int(config.get('CELEBRATION_EVERY', 10)),
        )


@dataclass
class Round:
    number: int
    target_direction: Direction
    displayed_direction: Direction
    consecutive_correct: int = 0
    should_trap: bool = False
    actual_direction: Optional[Direction] = None
    # what the player saw when the trapped swipe landed; a fake arrow counts
    feint_direction: Optional[Direction] = None
    is_waiting_for_guess: bool = False
    show_question_mark: bool = False
    revealed_direction: Optional[Direction] = None


class RoundStateMachine:
    """Owns one player's rounds, streak and deception timers.

    Input arrives through ``handle_swipe``; timers re-enter through the
    controller hooks below. Both paths run under ``self.lock``. Events for the
    presentation layer go to ``listener(name, payload)``.
    """

    def __init__(
        self,
        store,
        scheduler: Optional[TimerScheduler] = None,
        rng=None,
        settings: Optional[GameSettings] = None,
        listener: Optional[Callable[[str, Dict[str, Any]], None]] = None,
        name: str = 'local',
    ):
        self.store = store
        self.scheduler = scheduler or TimerScheduler()
        self.lock = self.scheduler.lock
        self.rng = rng or random.Random()
        self.settings = settings or GameSettings()
        self.name = name
        self._listener = listener
        self.state = RoundState.IDLE
        self.round: Optional[Round] = None
        self.swipe_count = 0
        self._round_counter = 0
        self.fakeout = FakeOutController(
            self.scheduler, self.rng, self.settings, self._fake_shown, self._fake_restored
        )
        self.trap = TrapController(self.scheduler, self.rng, self.settings, self)

    # ---- read side ----

    @property
    def consecutive_correct(self) -> int:
        return self.round.consecutive_correct if self.round else 0

    @property
    def difficulty(self) -> int:
        return difficulty_for(self.consecutive_correct)

    def snapshot(self) -> Dict[str, Any]:
        """Client-safe view. Target and actual directions are never exposed."""
        with self.lock:
            rnd = self.round
            payload = {
                'state': self.state.value,
                'round': rnd.number if rnd else 0,
                'displayed_direction': rnd.displayed_direction.value if rnd else None,
                'show_question_mark': bool(rnd and rnd.show_question_mark),
                'revealed_direction': rnd.revealed_direction.value if rnd and rnd.revealed_direction else None,
                'consecutive_correct': self.consecutive_correct,
                'difficulty': self.difficulty,
                'swipe_count': self.swipe_count,
            }
            payload.update(self.store.snapshot())
            return payload

    # ---- transitions ----

    def start_round(self) -> Round:
        with self.lock:
            self.trap.cancel()
            streak = self.consecutive_correct
            self._round_counter += 1
            target = pick_random(rng=self.rng)
            should_trap = (
                streak >= self.settings.trap_min_streak and self.rng.random() < self.settings.trap_probability
            )
            self.round = Round(
                number=self._round_counter,
                target_direction=target,
                displayed_direction=target,
                consecutive_correct=streak,
                should_trap=should_trap,
            )
            logger.info(
                f"[round-start] player={self.name} round={self._round_counter} target={target.value} "
                f"streak={streak} trap={should_trap}"
            )
            self._set_state(RoundState.AWAITING_SWIPE)
            self._emit(
                'round_started',
                round=self.round.number,
                displayed_direction=target.value,
                difficulty=self.difficulty,
                consecutive_correct=streak,
            )
            self.fakeout.schedule_for(self.round)
            return self.round

    def handle_swipe(self, direction) -> bool:
        """Feed one resolved swipe. Returns False when the swipe was ignored."""
        direction = Direction.coerce(direction)
        with self.lock:
            rnd = self.round
            if self.state is RoundState.AWAITING_GUESS and rnd.is_waiting_for_guess:
                self.swipe_count += 1
                self._resolve_guess(rnd, direction)
                return True
            if self.state not in SWIPEABLE_STATES:
                logger.debug(f"[swipe-ignored] player={self.name} state={self.state.value} direction={direction.value}")
                return False

            self.swipe_count += 1
            if rnd.should_trap and direction == rnd.target_direction:
                self._enter_feint(rnd)
            elif direction == rnd.target_direction:
                self._score_hit(rnd)
                self.start_round()
            else:
                self._score_miss(rnd)
                self.start_round()
            return True

    def reset(self) -> Round:
        """Break the streak on request: finalize the score and start over."""
        with self.lock:
            self.scheduler.cancel_all()
            if self.round:
                self.round.consecutive_correct = 0
            self.store.commit_game_over()
            logger.info(f"[reset] player={self.name}")
            self._emit('score_changed', consecutive_correct=0, **self.store.snapshot())
            return self.start_round()

    def teardown(self) -> None:
        with self.lock:
            self.scheduler.cancel_all()
            self._set_state(RoundState.IDLE)
            logger.info(f"[teardown] player={self.name}")

    # ---- scoring ----

    def _score_hit(self, rnd: Round, celebrate: bool = True) -> None:
        rnd.consecutive_correct += 1
        streak = rnd.consecutive_correct
        self.store.update_score(streak)
        self._emit('score_changed', consecutive_correct=streak, **self.store.snapshot())
        every = self.settings.celebration_every
        if celebrate and every and streak % every == 0:
            self._emit('celebration', level=streak // every, consecutive_correct=streak)

    def _score_miss(self, rnd: Round) -> None:
        rnd.consecutive_correct = 0
        self.store.commit_game_over()
        self._emit('score_changed', consecutive_correct=0, **self.store.snapshot())

    # ---- trap ----

    def _enter_feint(self, rnd: Round) -> None:
        rnd.feint_direction = rnd.displayed_direction
        self.fakeout.cancel()
        if rnd.displayed_direction != rnd.target_direction:
            rnd.displayed_direction = rnd.target_direction
            self._emit('direction_changed', displayed_direction=rnd.displayed_direction.value, faking=False)
        self._set_state(RoundState.PENDING_FAILURE_FEINT)
        self._emit('trap_stage', stage='success_feint', round=rnd.number)
        self.trap.arm(rnd)

    def _trap_sprung(self, rnd: Round, actual: Direction) -> bool:
        if not self._is_live(rnd, RoundState.PENDING_FAILURE_FEINT):
            return False
        rnd.actual_direction = actual
        logger.info(f"[trap-sprung] player={self.name} round={rnd.number} actual={actual.value}")
        return True

    def _trap_question(self, rnd: Round) -> bool:
        if not self._is_live(rnd, RoundState.PENDING_FAILURE_FEINT):
            return False
        rnd.show_question_mark = True
        rnd.is_waiting_for_guess = True
        self._set_state(RoundState.AWAITING_GUESS)
        self._emit('trap_stage', stage='question', round=rnd.number)
        return True

    def _resolve_guess(self, rnd: Round, guess: Direction) -> None:
        # Cleared before anything else so one guess resolves exactly once.
        rnd.is_waiting_for_guess = False
        rnd.show_question_mark = False
        rnd.revealed_direction = rnd.actual_direction
        correct = guess == rnd.actual_direction
        logger.info(
            f"[trap-guess] player={self.name} round={rnd.number} guess={guess.value} "
            f"actual={rnd.actual_direction.value} correct={correct}"
        )
        if correct:
            self._set_state(RoundState.REVEALING_SUCCESS)
            self._score_hit(rnd, celebrate=False)
            self._emit(
                'trap_stage', stage='revealed_success', round=rnd.number, revealed_direction=rnd.actual_direction.value
            )
        else:
            self._set_state(RoundState.REVEALING_FAILURE)
            self._score_miss(rnd)
        self.trap.resolve(rnd, correct)

    def _trap_stage(self, rnd: Round, stage: str) -> bool:
        if not self._is_live(rnd, RoundState.REVEALING_FAILURE):
            return False
        payload = {'stage': stage, 'round': rnd.number}
        if stage == 'overlay':
            payload['revealed_direction'] = rnd.actual_direction.value
        self._emit('trap_stage', **payload)
        return True

    def _trap_finished(self, rnd: Round) -> bool:
        if not self._is_live(rnd, RoundState.REVEALING_SUCCESS, RoundState.REVEALING_FAILURE):
            return False
        self.start_round()
        return True

    # ---- fake-out ----

    def _fake_shown(self, rnd: Round, fake: Direction) -> bool:
        if not self._is_live(rnd, RoundState.AWAITING_SWIPE):
            return False
        rnd.displayed_direction = fake
        self._set_state(RoundState.FAKING)
        self._emit('direction_changed', displayed_direction=fake.value, faking=True)
        return True

    def _fake_restored(self, rnd: Round) -> bool:
        if not self._is_live(rnd, RoundState.FAKING):
            return False
        rnd.displayed_direction = rnd.target_direction
        self._set_state(RoundState.AWAITING_SWIPE)
        self._emit('direction_changed', displayed_direction=rnd.target_direction.value, faking=False)
        return True

    # ---- helpers ----

    def _is_live(self, rnd: Round, *states: RoundState) -> bool:
        if rnd is not self.round or self.state not in states:
            logger.debug(f"[timer-stale] player={self.name} round={rnd.number} state={self.state.value}")
            return False
        return True

    def _set_state(self, state: RoundState) -> None:
        if state is self.state:
            return
        previous, self.state = self.state, state
        self._emit('state_changed', previous=previous.value, state=state.value)

    def _emit(self, name: str, **payload) -> None:
        if self._listener is not None:
            self._listener(name, payload)
