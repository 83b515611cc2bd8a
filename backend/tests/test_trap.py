from conftest import StubRandom, event_names
from swipe.services.games.directions import Direction
from swipe.services.games.machine import RoundState
from swipe.services.games.trap import TRAP_CATEGORY


def _trapped_machine(make_machine, actual=None):
    """Streak of 3 with the current round trapped; the target is always Up."""
    rng = StubRandom()
    machine = make_machine(rng=rng)
    machine.start_round()
    machine.handle_swipe(Direction.UP)
    machine.handle_swipe(Direction.UP)
    rng.randoms = [0.1]
    machine.handle_swipe(Direction.UP)
    assert machine.round.should_trap
    if actual is not None:
        # target pick for a later round is not consumed before the trap springs
        rng.choices = [actual]
    return machine


def _spring(machine):
    assert machine.handle_swipe(Direction.UP)
    machine.scheduler.advance(0.5)
    machine.scheduler.advance(0.1)
    assert machine.state is RoundState.AWAITING_GUESS


def test_correct_swipe_on_trapped_round_feints(make_machine):
    machine = _trapped_machine(make_machine)
    assert machine.handle_swipe(Direction.UP)
    assert machine.state is RoundState.PENDING_FAILURE_FEINT
    # no score yet
    assert machine.consecutive_correct == 3
    assert machine.store.current_score == 3
    # swipes during the feint are ignored
    assert machine.handle_swipe(Direction.UP) is False

    machine.scheduler.advance(0.49)
    assert machine.round.actual_direction is None
    machine.scheduler.advance(0.01)
    assert machine.round.actual_direction is not None
    assert machine.round.actual_direction is not machine.round.displayed_direction
    assert machine.state is RoundState.PENDING_FAILURE_FEINT

    machine.scheduler.advance(0.1)
    assert machine.state is RoundState.AWAITING_GUESS
    assert machine.round.is_waiting_for_guess
    assert machine.snapshot()['show_question_mark'] is True
    stages = [p['stage'] for n, p in machine.events if n == 'trap_stage']
    assert stages == ['success_feint', 'question']


def test_wrong_direction_on_trapped_round_scores_normally(make_machine):
    machine = _trapped_machine(make_machine)
    machine.handle_swipe(Direction.LEFT)
    assert machine.consecutive_correct == 0
    assert machine.store.high_score == 3
    assert 'trap_stage' not in event_names(machine)


def test_guess_is_judged_against_actual_not_target(make_machine):
    machine = _trapped_machine(make_machine, actual=Direction.RIGHT)
    _spring(machine)
    assert machine.round.actual_direction is Direction.RIGHT

    # the first target is now wrong
    assert machine.handle_swipe(Direction.UP)
    assert machine.state is RoundState.REVEALING_FAILURE
    assert machine.consecutive_correct == 0
    assert machine.store.current_score == 0
    assert machine.store.high_score == 3
    assert machine.snapshot()['revealed_direction'] == 'Right'


def test_correct_guess_scores_and_moves_on(make_machine):
    machine = _trapped_machine(make_machine, actual=Direction.LEFT)
    _spring(machine)
    assert machine.handle_swipe(Direction.LEFT)
    assert machine.state is RoundState.REVEALING_SUCCESS
    assert machine.consecutive_correct == 4
    assert machine.store.current_score == 4
    trap_round = machine.round.number

    machine.scheduler.advance(0.49)
    assert machine.state is RoundState.REVEALING_SUCCESS
    machine.scheduler.advance(0.01)
    assert machine.state is RoundState.AWAITING_SWIPE
    assert machine.round.number == trap_round + 1
    assert machine.round.consecutive_correct == 4


def test_guess_resolves_exactly_once(make_machine):
    machine = _trapped_machine(make_machine, actual=Direction.LEFT)
    _spring(machine)
    assert machine.handle_swipe(Direction.LEFT)
    assert machine.round.is_waiting_for_guess is False
    assert machine.handle_swipe(Direction.LEFT) is False
    assert machine.consecutive_correct == 4


def test_failure_sequence_runs_on_schedule(make_machine):
    machine = _trapped_machine(make_machine, actual=Direction.RIGHT)
    _spring(machine)
    machine.handle_swipe(Direction.DOWN)

    def stages():
        return [p['stage'] for n, p in machine.events if n == 'trap_stage'][2:]

    assert stages() == ['overlay']
    machine.scheduler.advance(0.39)
    assert stages() == ['overlay']
    machine.scheduler.advance(0.02)
    assert stages() == ['overlay', 'seal']
    machine.scheduler.advance(0.4)
    assert stages() == ['overlay', 'seal', 'fail_text']
    machine.scheduler.advance(0.2)
    assert stages() == ['overlay', 'seal', 'fail_text', 'particles']
    # swipes during the animation are ignored
    assert machine.handle_swipe(Direction.RIGHT) is False

    machine.scheduler.advance(1.9)
    assert machine.state is RoundState.REVEALING_FAILURE
    machine.scheduler.advance(0.1)
    assert stages()[-1] == 'reset'
    assert machine.state is RoundState.AWAITING_SWIPE
    assert machine.round.actual_direction is None
    assert machine.scheduler.pending(TRAP_CATEGORY) is None


def test_reset_during_trap_cancels_the_chain(make_machine):
    machine = _trapped_machine(make_machine)
    machine.handle_swipe(Direction.UP)
    assert machine.state is RoundState.PENDING_FAILURE_FEINT

    machine.reset()
    assert machine.state is RoundState.AWAITING_SWIPE
    machine.scheduler.advance(5)
    assert machine.state is RoundState.AWAITING_SWIPE
    assert machine.round.actual_direction is None
    assert 'question' not in [p.get('stage') for n, p in machine.events if n == 'trap_stage']


def test_teardown_while_waiting_for_guess(make_machine):
    machine = _trapped_machine(make_machine, actual=Direction.RIGHT)
    _spring(machine)
    machine.teardown()
    assert machine.handle_swipe(Direction.RIGHT) is False
    machine.scheduler.advance(5)
    assert machine.state is RoundState.IDLE
    assert machine.store.current_score == 3


def test_trap_during_fake_excludes_the_arrow_on_screen(make_machine):
    rng = StubRandom()
    machine = make_machine(rng=rng)
    machine.start_round()
    for _ in range(4):
        machine.handle_swipe(Direction.UP)
    # round at streak 5: trap roll, then fake roll
    rng.randoms = [0.1, 0.0]
    machine.handle_swipe(Direction.UP)
    assert machine.round.should_trap

    rng.choices = [Direction.DOWN]
    machine.scheduler.advance(0.8)
    assert machine.state is RoundState.FAKING
    assert machine.round.displayed_direction is Direction.DOWN

    assert machine.handle_swipe(Direction.UP)
    assert machine.state is RoundState.PENDING_FAILURE_FEINT
    assert machine.round.displayed_direction is Direction.UP
    assert machine.round.feint_direction is Direction.DOWN

    machine.scheduler.advance(0.5)
    assert machine.round.actual_direction is not None
    assert machine.round.actual_direction is not Direction.DOWN
