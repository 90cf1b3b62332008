from flask_socketio import join_room, leave_room, emit
from fightpicks import socketio
from fightpicks.services.games.notify import NAMESPACE, game_room
import logging

logger = logging.getLogger(__name__)


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_join_game(data):
    # Leaderboards, host screens and player cards all listen on the game's room
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required', 'code': 'validation_error'})
        return
    room = game_room(game_code)
    join_room(room)
    logger.debug(f"[ws-join] room={room}")
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required', 'code': 'validation_error'})
        return
    room = game_room(game_code)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
