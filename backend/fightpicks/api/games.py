from flask import Blueprint, jsonify, request, current_app
from fightpicks import db
from fightpicks.errors import GameError, NotFoundError
from fightpicks.models import Fight
from fightpicks.services.games import notify
from fightpicks.services.games.picks import get_player_picks, submit_picks
from fightpicks.services.games.progression import classify_fights
from fightpicks.services.games.results import record_result
from fightpicks.services.games.session import (
    create_game,
    game_phase,
    get_game_by_code,
    get_player,
    join_game,
    picks_locked,
    require_host,
    set_ready,
    start_game,
)
from fightpicks.services.games.standings import get_standings


games = Blueprint('games', __name__)


@games.errorhandler(GameError)
def handle_game_error(error: GameError):
    db.session.rollback()
    current_app.logger.info(f"[rejected] {request.method} {request.path} code={error.code} reason={error.message}")
    return jsonify(error.to_dict()), error.status_code


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _game_payload(game) -> dict:
    fights = Fight.query.filter_by(game_id=game.id).order_by(Fight.order_index).all()
    policy = current_app.config.get('PROGRESSION_POLICY')
    fights_serialized = []
    for fight, progress in classify_fights(fights, policy):
        fd = fight.to_dict()
        fd['progress'] = progress
        fights_serialized.append(fd)
    payload = game.to_dict()
    payload['status'] = game_phase(game, fights)
    payload['picks_locked'] = picks_locked(game)
    payload['progression_policy'] = policy
    payload['fights'] = fights_serialized
    payload['players'] = [p.to_dict() for p in game.players]
    return payload


@games.route('/create', methods=['POST'])
def create_game_unauthed():
    data = _json_body()
    game, host = create_game(
        name=data.get('name'),
        host_name=data.get('host_name'),
        fights=data.get('fights'),
        photo_ref=data.get('photo_ref'),
    )
    return jsonify({
        'message': 'New game created!',
        'game_id': game.id,
        'game_code': game.game_code,
        'host_player_id': host.id,
    }), 201


@games.route('/join', methods=['POST'])
def join_game_unauthed():
    data = _json_body()
    player = join_game(data.get('game_code'), data.get('name'), photo_ref=data.get('photo_ref'))
    notify.broadcast_state(player.game.game_code)
    return jsonify(player.to_dict()), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    game = get_game_by_code(game_code)
    return jsonify(_game_payload(game))


@games.route('/<string:game_code>/ready', methods=['POST'])
def toggle_ready(game_code):
    data = _json_body()
    game = get_game_by_code(game_code)
    # Resolve within this game so a stale code cannot flip another game's player
    player = get_player(data.get('player_id'), game)
    updated = set_ready(player.id, bool(data.get('is_ready', True)))
    notify.broadcast_state(game.game_code)
    return jsonify(updated.to_dict())


@games.route('/<string:game_code>/start', methods=['POST'])
def start(game_code):
    data = _json_body()
    game = start_game(game_code, data.get('controller_id'), data.get('countdown_sec'))
    notify.broadcast_state(game.game_code)
    return jsonify(_game_payload(game))


@games.route('/<string:game_code>/picks', methods=['POST'])
def save_picks(game_code):
    data = _json_body()
    game = get_game_by_code(game_code)
    player_id = data.get('player_id', data.get('playerId'))
    # Only accept players of the game in the URL
    player = get_player(player_id, game)
    saved = submit_picks(player.id, data.get('picks'))
    notify.broadcast_state(game.game_code)
    return jsonify({'success': True, 'saved': saved})


@games.route('/<string:game_code>/players/<int:player_id>/picks', methods=['GET'])
def player_card(game_code, player_id):
    game = get_game_by_code(game_code)
    return jsonify(get_player_picks(player_id, game))


@games.route('/<string:game_code>/fights/<int:fight_id>/result', methods=['POST'])
def set_result(game_code, fight_id):
    data = _json_body()
    game = get_game_by_code(game_code)
    require_host(game, data.get('controller_id'))
    if not Fight.query.filter_by(id=fight_id, game_id=game.id).first():
        raise NotFoundError(f'Fight {fight_id} not found')
    summary = record_result(
        fight_id,
        winner=data.get('winner'),
        method=data.get('method'),
        round=data.get('round'),
    )
    return jsonify(summary.to_dict())


@games.route('/<string:game_code>/leaderboard', methods=['GET'])
def leaderboard(game_code):
    game = get_game_by_code(game_code)
    return jsonify({'game_code': game.game_code, 'standings': get_standings(game.id)})
