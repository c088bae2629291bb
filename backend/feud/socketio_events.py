from flask_socketio import join_room, leave_room, emit
from feud import socketio


# Board, scoreboard and sound clients join ``game:<CODE>`` to receive
# ``state_update`` and ``feud_event`` broadcasts from the HTTP layer.
def _room_for(game_code: str) -> str:
    return f"game:{game_code.upper()}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # Socket.IO drops the sid from its rooms on its own.
    return None


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = _room_for(game_code)
    join_room(room)
    emit('joined', {'room': room})
    # Prompt the new client to fetch the current state right away
    emit('state_update', {'game_code': game_code.upper()})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = _room_for(game_code)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
