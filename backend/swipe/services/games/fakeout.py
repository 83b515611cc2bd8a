import logging

from .directions import pick_random

logger = logging.getLogger(__name__)

FAKE_CATEGORY = 'fake'
MAX_FAKE_PROBABILITY = 0.7
FAKE_PROBABILITY_PER_LEVEL = 0.07
BASE_FAKE_DURATION_SEC = 0.7
MIN_FAKE_DURATION_SEC = 0.2
FAKE_DURATION_STEP_SEC = 0.05


def difficulty_for(consecutive_correct: int) -> int:
    return max(1, min(10, consecutive_correct // 5))


def fake_probability(difficulty: int) -> float:
    return min(MAX_FAKE_PROBABILITY, difficulty * FAKE_PROBABILITY_PER_LEVEL)


def fake_duration(difficulty: int) -> float:
    return max(MIN_FAKE_DURATION_SEC, BASE_FAKE_DURATION_SEC - difficulty * FAKE_DURATION_STEP_SEC)


class FakeOutController:
    """Occasionally flashes a wrong arrow while the real target stays put.

    ``on_fake(round, direction)`` and ``on_restore(round)`` are the owner's
    hooks for changing the displayed direction; the controller never touches
    ``target_direction``.
    """

    def __init__(self, scheduler, rng, settings, on_fake, on_restore):
        self.scheduler = scheduler
        self.rng = rng
        self.settings = settings
        self._on_fake = on_fake
        self._on_restore = on_restore

    def cancel(self) -> None:
        self.scheduler.cancel(FAKE_CATEGORY)

    def schedule_for(self, rnd):
        """Maybe schedule one fake for this round. Returns the handle or None."""
        self.cancel()
        streak = rnd.consecutive_correct
        if streak < self.settings.fake_min_streak:
            return None

        difficulty = difficulty_for(streak)
        probability = fake_probability(difficulty)
        if self.rng.random() >= probability:
            return None

        delay = self.rng.uniform(self.settings.fake_delay_min, self.settings.fake_delay_max)
        logger.debug(f"[fake-set] round={rnd.number} difficulty={difficulty} p={probability:.2f} delay={delay:.2f}s")
        return self.scheduler.schedule(FAKE_CATEGORY, delay, lambda: self._show(rnd, difficulty))

    def _show(self, rnd, difficulty: int) -> None:
        fake = pick_random(exclude={rnd.target_direction}, rng=self.rng)
        if not self._on_fake(rnd, fake):
            return
        self.scheduler.schedule(FAKE_CATEGORY, fake_duration(difficulty), lambda: self._on_restore(rnd))
