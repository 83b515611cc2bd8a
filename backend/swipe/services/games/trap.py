"""The trap: a fake "success" that turns into a guessing challenge.

Sequence after a correct swipe on a trapped round::

    feint delay -> spring (pick actual direction) -> reveal delay -> question mark
    -> player guesses -> success pause | scripted failure stages -> next round

Every step is a single timer in the ``trap`` category; each stage schedules
the next one, so a whole chain is invalidated by cancelling that category.
"""
import logging

from .directions import pick_random

logger = logging.getLogger(__name__)

TRAP_CATEGORY = 'trap'

# (offset from the wrong guess in seconds, stage name). The last stage ends the trap.
FAILURE_STAGES = (
    (0.0, 'overlay'),
    (0.4, 'seal'),
    (0.8, 'fail_text'),
    (1.0, 'particles'),
    (3.0, 'reset'),
)


class TrapController:
    """Drives the trap chain; the owning machine supplies the hooks.

    Hooks on ``owner``:
      - ``_trap_sprung(rnd, actual)`` when the actual direction is chosen
      - ``_trap_question(rnd)`` when the guess window opens
      - ``_trap_stage(rnd, name)`` for each cosmetic failure stage
      - ``_trap_finished(rnd)`` when the next round should start

    Each hook returns False when ``rnd`` is no longer the live round, which
    stops the chain.
    """

    def __init__(self, scheduler, rng, settings, owner):
        self.scheduler = scheduler
        self.rng = rng
        self.settings = settings
        self.owner = owner

    def cancel(self) -> None:
        self.scheduler.cancel(TRAP_CATEGORY)

    def arm(self, rnd):
        logger.debug(f"[trap-arm] round={rnd.number} target={rnd.target_direction.value}")
        return self.scheduler.schedule(TRAP_CATEGORY, self.settings.feint_delay, lambda: self._spring(rnd))

    def _spring(self, rnd) -> None:
        shown = rnd.feint_direction or rnd.displayed_direction
        actual = pick_random(exclude={shown}, rng=self.rng)
        if not self.owner._trap_sprung(rnd, actual):
            return
        self.scheduler.schedule(TRAP_CATEGORY, self.settings.reveal_delay, lambda: self.owner._trap_question(rnd))

    def resolve(self, rnd, correct: bool):
        """Play out the guess result. Scoring is the owner's job."""
        if correct:
            return self.scheduler.schedule(
                TRAP_CATEGORY, self.settings.success_pause, lambda: self.owner._trap_finished(rnd)
            )
        # The first stage sits at +0s and runs right away.
        self._run_failure_stage(rnd, 0)
        return self.scheduler.pending(TRAP_CATEGORY)

    def _schedule_failure_stage(self, rnd, index: int):
        delay = FAILURE_STAGES[index][0] - FAILURE_STAGES[index - 1][0]
        return self.scheduler.schedule(TRAP_CATEGORY, delay, lambda: self._run_failure_stage(rnd, index))

    def _run_failure_stage(self, rnd, index: int) -> None:
        _, name = FAILURE_STAGES[index]
        if not self.owner._trap_stage(rnd, name):
            return
        if index == len(FAILURE_STAGES) - 1:
            self.owner._trap_finished(rnd)
            return
        self._schedule_failure_stage(rnd, index + 1)
