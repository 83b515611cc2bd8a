import random
import threading
from typing import Dict, Optional

from swipe import socketio
from .machine import GameSettings, RoundStateMachine
from .scoring import ScoreStore
from .timers import ManualTimerScheduler, TimerScheduler


_machines: Dict[int, RoundStateMachine] = {}
_registry_lock = threading.Lock()


def player_room(player_id: int) -> str:
    return f"player:{player_id}"


def build_scheduler(app) -> TimerScheduler:
    """Real timers in production; a virtual clock in TESTING unless explicitly enabled."""
    lock = threading.RLock()
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return ManualTimerScheduler(lock=lock)
    return TimerScheduler(lock=lock, spawn=socketio.start_background_task, sleep=socketio.sleep)


def _make_listener(player_id: int):
    room = player_room(player_id)

    def _listener(name, payload):
        socketio.emit(name, payload, to=room, namespace='/ws')

    return _listener


def get_machine(app, player_id: int, create: bool = True) -> Optional[RoundStateMachine]:
    with _registry_lock:
        machine = _machines.get(player_id)
        if machine is None and create:
            machine = RoundStateMachine(
                ScoreStore(app, player_id),
                scheduler=build_scheduler(app),
                rng=random.Random(),
                settings=GameSettings.from_config(app.config),
                listener=_make_listener(player_id),
                name=str(player_id),
            )
            _machines[player_id] = machine
            app.logger.info(f"[machine-create] player={player_id}")
        return machine


def discard_machine(player_id: int) -> bool:
    with _registry_lock:
        machine = _machines.pop(player_id, None)
    if machine is None:
        return False
    machine.teardown()
    return True


def discard_all() -> None:
    for player_id in list(_machines):
        discard_machine(player_id)
