from flask_socketio import join_room, leave_room, emit
from flask import current_app
from tracker.services.tournament.store import get_state, state_lock

BOARD_ROOM = 'tournament'


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_board(data=None):
    join_room(BOARD_ROOM)
    emit('joined', {'room': BOARD_ROOM})


def handle_leave_board(data=None):
    leave_room(BOARD_ROOM)
    emit('left', {'room': BOARD_ROOM})


def handle_request_state(data=None):
    # Imported here to avoid a cycle with the API module
    from tracker.api.tournament import snapshot
    with state_lock:
        payload = snapshot(get_state(current_app._get_current_object()))
    emit('state', payload)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from tracker import socketio

    handlers = {
        'connect': handle_connect,
        'join_board': handle_join_board,
        'leave_board': handle_leave_board,
        'request_state': handle_request_state,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
