from typing import Callable, Set, Tuple

from imposter import db, socketio
from .state import Phase


_scheduled_phase_keys: Set[Tuple[str, str, str]] = set()


def schedule_phase_advance(
    app,
    room_id: str,
    expected_phase: Phase,
    session_id: str,
    delay: float,
    action: Callable[[str], None],
) -> bool:
    """Run ``action(room_id)`` after ``delay`` seconds if nothing moved on.

    - Ensures a single timer per (room, phase, session)
    - On firing, takes the room lock and re-checks that the room still exists,
      still runs ``session_id`` and is still in ``expected_phase``; otherwise no-ops
    - Runs inline, inside the caller's app context, in TESTING mode
    """
    key = (room_id, expected_phase.value, session_id)
    if key in _scheduled_phase_keys:
        app.logger.info(f"[timer-skip] room={room_id} phase={expected_phase.value} already scheduled")
        return False
    _scheduled_phase_keys.add(key)
    app.logger.info(f"[timer-set] room={room_id} phase={expected_phase.value} session={session_id} delay={delay}s")

    def _fire():
        _scheduled_phase_keys.discard(key)
        registry = app.extensions['game_manager'].registry
        room = registry.get_room(room_id)
        if room is None:
            app.logger.info(f"[timer-abort] room={room_id} no longer exists")
            return
        with room.lock:
            game = room.game
            if game is None or game.session_id != session_id or game.phase != expected_phase:
                app.logger.info(
                    f"[timer-abort] room={room_id} expected={expected_phase.value}/{session_id} "
                    f"actual={getattr(game, 'phase', None)}/{getattr(game, 'session_id', None)}"
                )
                return
            app.logger.info(f"[timer-fire] room={room_id} phase={expected_phase.value} session={session_id}")
            try:
                action(room_id)
            except Exception:
                db.session.rollback()
                app.logger.exception(f"[timer-error] room={room_id} phase={expected_phase.value}")

    def _worker():
        if delay > 0:
            socketio.sleep(delay)
        with app.app_context():
            _fire()

    if app.config.get('TESTING'):
        _fire()
    else:
        socketio.start_background_task(_worker)
    return True
