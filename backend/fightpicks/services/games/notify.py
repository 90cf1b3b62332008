"""Realtime fan-out over Socket.IO.

Everything is emitted to the game's room on the ``/ws`` namespace after the
database commit it describes, so a client that refetches on an event always
sees the new state.
"""
from fightpicks import socketio
from fightpicks.services.games.scoring import classify_reaction

NAMESPACE = '/ws'


def game_room(game_code: str) -> str:
    return f"game:{game_code.upper()}"


def broadcast_state(game_code: str) -> None:
    socketio.emit('state_update', {'game_code': game_code}, to=game_room(game_code), namespace=NAMESPACE)


def broadcast_pick_scored(game_code: str, change) -> None:
    """One event per pick per result write.

    ``first_scored`` is true only when the pick had no points before, so
    clients can play one-time reactions without repeating them on corrections.
    """
    payload = {
        'game_code': game_code,
        'pick_id': change.pick_id,
        'player_id': change.player_id,
        'fight_id': change.fight_id,
        'previous_points': change.previous_points,
        'points': change.points,
        'first_scored': change.previous_points is None,
        'reaction': classify_reaction(change.points),
    }
    socketio.emit('pick_scored', payload, to=game_room(game_code), namespace=NAMESPACE)


def broadcast_standings(game_code: str, standings) -> None:
    socketio.emit(
        'standings_update',
        {'game_code': game_code, 'standings': standings},
        to=game_room(game_code),
        namespace=NAMESPACE,
    )
