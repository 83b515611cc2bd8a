import random
from enum import Enum
from typing import Iterable, Optional


class Direction(str, Enum):
    UP = 'Up'
    DOWN = 'Down'
    LEFT = 'Left'
    RIGHT = 'Right'

    @classmethod
    def coerce(cls, value) -> 'Direction':
        """Accept a Direction or a case-insensitive name like 'up' / 'Left'."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for d in cls:
                if d.value.lower() == value.strip().lower():
                    return d
        raise ValueError(f"Unknown direction: {value!r}")


ALL_DIRECTIONS = tuple(Direction)


class DirectionExhaustedError(RuntimeError):
    """Every direction was excluded; callers never exclude more than one."""


def pick_random(exclude: Iterable[Direction] = (), rng=None) -> Direction:
    rng = rng or random
    excluded = set(exclude)
    candidates = [d for d in ALL_DIRECTIONS if d not in excluded]
    if not candidates:
        raise DirectionExhaustedError(f"No direction left after excluding {sorted(d.value for d in excluded)}")
    return rng.choice(candidates)


def resolve_swipe(dx: float, dy: float, min_distance: float = 0) -> Optional[Direction]:
    """Map a drag displacement to a direction.

    Screen coordinates: positive dy points down. Horizontal wins only when it
    strictly exceeds vertical, so a perfect diagonal resolves vertically.
    Gestures shorter than ``min_distance`` resolve to None.
    """
    if min_distance and (dx * dx + dy * dy) < min_distance * min_distance:
        return None
    if abs(dx) > abs(dy):
        return Direction.RIGHT if dx > 0 else Direction.LEFT
    return Direction.DOWN if dy > 0 else Direction.UP


def direction_from_payload(data, min_distance: float = 0) -> Optional[Direction]:
    """Read a swipe from a client payload: ``{"direction": "Up"}`` or ``{"dx": .., "dy": ..}``.

    Raises ValueError for malformed payloads; returns None for gestures too
    short to count.
    """
    if not isinstance(data, dict):
        raise ValueError('swipe payload must be an object')
    if data.get('direction') is not None:
        return Direction.coerce(data['direction'])
    if 'dx' in data and 'dy' in data:
        try:
            dx, dy = float(data['dx']), float(data['dy'])
        except (TypeError, ValueError):
            raise ValueError('dx and dy must be numbers')
        return resolve_swipe(dx, dy, min_distance)
    raise ValueError('direction or dx/dy is required')
