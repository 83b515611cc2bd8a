import random

import pytest

from swipe.services.games.directions import (
    ALL_DIRECTIONS,
    Direction,
    DirectionExhaustedError,
    direction_from_payload,
    pick_random,
    resolve_swipe,
)


def test_pick_random_never_returns_excluded():
    rng = random.Random(1234)
    for excluded in ALL_DIRECTIONS:
        picks = {pick_random(exclude={excluded}, rng=rng) for _ in range(200)}
        assert excluded not in picks
        assert picks == set(ALL_DIRECTIONS) - {excluded}


def test_pick_random_covers_all_directions():
    rng = random.Random(99)
    assert {pick_random(rng=rng) for _ in range(200)} == set(ALL_DIRECTIONS)


def test_pick_random_with_everything_excluded_is_fatal():
    with pytest.raises(DirectionExhaustedError):
        pick_random(exclude=ALL_DIRECTIONS)


@pytest.mark.parametrize('dx, dy, expected', [
    (50, 10, Direction.RIGHT),
    (-50, 10, Direction.LEFT),
    (10, 50, Direction.DOWN),
    (10, -50, Direction.UP),
    # equal magnitude resolves vertically
    (30, 30, Direction.DOWN),
    (-30, -30, Direction.UP),
])
def test_resolve_swipe(dx, dy, expected):
    assert resolve_swipe(dx, dy) is expected


def test_resolve_swipe_ignores_short_gestures():
    assert resolve_swipe(5, 5, min_distance=20) is None
    assert resolve_swipe(0, -25, min_distance=20) is Direction.UP


def test_coerce_accepts_names_case_insensitively():
    assert Direction.coerce('up') is Direction.UP
    assert Direction.coerce(' Left ') is Direction.LEFT
    assert Direction.coerce(Direction.DOWN) is Direction.DOWN
    with pytest.raises(ValueError):
        Direction.coerce('sideways')
    with pytest.raises(ValueError):
        Direction.coerce(3)


def test_direction_from_payload():
    assert direction_from_payload({'direction': 'Right'}) is Direction.RIGHT
    assert direction_from_payload({'dx': -40, 'dy': 3}, min_distance=20) is Direction.LEFT
    assert direction_from_payload({'dx': 2, 'dy': 3}, min_distance=20) is None
    with pytest.raises(ValueError):
        direction_from_payload({})
    with pytest.raises(ValueError):
        direction_from_payload({'dx': 'far', 'dy': 1})
    with pytest.raises(ValueError):
        direction_from_payload(None)
