"""Game lifecycle: open (lobby, picks accepted) -> running (picks locked).

``concluded`` is never stored; a running game whose fights are all decided
reports itself as concluded.
"""
import logging
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from fightpicks import db
from fightpicks.errors import (
    LockedError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from fightpicks.models import (
    STATUS_CONCLUDED,
    STATUS_OPEN,
    STATUS_RUNNING,
    Fight,
    Game,
    Player,
)

logger = logging.getLogger(__name__)

# Placeholder main card used when the host does not supply one
DEFAULT_CARD = [
    {'fighter_a': 'Jon Jones', 'fighter_b': 'Daniel Cormier', 'country_a': 'US', 'country_b': 'US'},
    {'fighter_a': 'Conor McGregor', 'fighter_b': 'Khabib Nurmagomedov', 'country_a': 'IE', 'country_b': 'RU'},
    {'fighter_a': 'Israel Adesanya', 'fighter_b': 'Alex Pereira', 'country_a': 'NZ', 'country_b': 'BR'},
    {'fighter_a': 'Max Holloway', 'fighter_b': 'Alexander Volkanovski', 'country_a': 'US', 'country_b': 'AU'},
    {'fighter_a': 'Amanda Nunes', 'fighter_b': 'Valentina Shevchenko', 'country_a': 'BR', 'country_b': 'KG'},
]


def picks_locked(game: Game) -> bool:
    return game.status != STATUS_OPEN


def game_phase(game: Game, fights=None) -> str:
    if game.status == STATUS_OPEN:
        return STATUS_OPEN
    fights = game.fights if fights is None else fights
    if fights and all(f.is_decided for f in fights):
        return STATUS_CONCLUDED
    return STATUS_RUNNING


def get_game_by_code(game_code) -> Game:
    if not game_code or not str(game_code).strip():
        raise ValidationError('Game code is required')
    game = Game.query.filter_by(game_code=str(game_code).strip().upper()).first()
    if not game:
        raise NotFoundError('Game not found')
    return game


def get_player(player_id, game: Game = None) -> Player:
    if player_id is None or player_id == '':
        raise ValidationError('Missing player id (try rejoining the game)')
    try:
        player_id = int(player_id)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid player id {player_id!r}') from None
    query = Player.query.filter_by(id=player_id)
    if game is not None:
        query = query.filter_by(game_id=game.id)
    player = query.first()
    if not player:
        raise NotFoundError('Player not found (try rejoining the game)')
    return player


def require_host(game: Game, controller_id) -> Player:
    player = get_player(controller_id, game)
    host = game.host
    if host is None or host.id != player.id:
        raise PermissionDeniedError('Only the host may do that')
    return player


def _build_card(fights):
    if fights is None:
        fights = DEFAULT_CARD
    if not isinstance(fights, list) or not fights:
        raise ValidationError('A game needs at least one fight')
    card = []
    seen_orders = set()
    for position, spec in enumerate(fights, start=1):
        if not isinstance(spec, dict):
            raise ValidationError(f'Fight #{position} is malformed')
        fighter_a = (spec.get('fighter_a') or '').strip()
        fighter_b = (spec.get('fighter_b') or '').strip()
        if not fighter_a or not fighter_b:
            raise ValidationError(f'Fight #{position} needs two fighters')
        order_index = spec.get('order_index', position)
        try:
            order_index = int(order_index)
        except (TypeError, ValueError):
            raise ValidationError(f'Fight #{position} has an invalid order_index') from None
        if order_index in seen_orders:
            raise ValidationError(f'Duplicate order_index {order_index}')
        seen_orders.add(order_index)
        card.append(Fight(
            fighter_a=fighter_a,
            fighter_b=fighter_b,
            country_a=(spec.get('country_a') or None),
            country_b=(spec.get('country_b') or None),
            order_index=order_index,
        ))
    return card


def create_game(name=None, host_name=None, fights=None, photo_ref=None):
    """Create a game with its fixed card; the host joins as the first player."""
    name = (name or '').strip() or 'UFC Main Card'
    host_name = (host_name or '').strip() or 'Host'
    card = _build_card(fights)
    try:
        code_length = int(current_app.config.get('GAME_CODE_LENGTH', 5))
        game = Game(name=name, host_name=host_name, code_length=code_length)
        db.session.add(game)
        db.session.flush()
        for fight in card:
            fight.game_id = game.id
            db.session.add(fight)
        host = Player(game_id=game.id, display_name=host_name, is_ready=False, photo_ref=photo_ref)
        db.session.add(host)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Failed to create game') from exc
    logger.info(f"[create] game={game.id} code={game.game_code} fights={len(card)} host={host.id}")
    return game, host


def join_game(game_code, display_name, photo_ref=None) -> Player:
    display_name = (display_name or '').strip()
    if not game_code or not display_name:
        raise ValidationError('Game code and player name are required')
    game = get_game_by_code(game_code)
    player = Player(game_id=game.id, display_name=display_name, is_ready=False, photo_ref=photo_ref)
    try:
        db.session.add(player)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Could not join game') from exc
    logger.info(f"[join] game={game.id} player={player.id} name={display_name!r}")
    return player


def set_ready(player_id, is_ready: bool) -> Player:
    player = get_player(player_id)
    game = Game.query.filter_by(id=player.game_id).with_for_update(read=True).populate_existing().first()
    if picks_locked(game):
        db.session.rollback()
        raise LockedError('Game already started')
    player.is_ready = bool(is_ready)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Failed to update ready status') from exc
    return player


def start_game(game_code, controller_id, countdown_sec=None) -> Game:
    """Flip open -> running and stamp started_at.

    Picks lock at the flip. ``started_at`` may lie in the future so clients
    can run a synchronised countdown; it does not delay the lock.
    """
    game = get_game_by_code(game_code)
    require_host(game, controller_id)
    game = Game.query.filter_by(id=game.id).with_for_update().populate_existing().first()
    if game.status != STATUS_OPEN:
        # Idempotent start: already started
        db.session.rollback()
        return game

    min_players = int(current_app.config.get('MIN_PLAYERS', 1))
    if len(game.players) < min_players:
        db.session.rollback()
        raise ValidationError(f'At least {min_players} players are required to start')

    if countdown_sec is None:
        countdown_sec = current_app.config.get('START_COUNTDOWN_SEC', 0)
    try:
        countdown_sec = max(0, int(countdown_sec))
    except (TypeError, ValueError):
        db.session.rollback()
        raise ValidationError('countdown_sec must be a whole number of seconds') from None

    game.status = STATUS_RUNNING
    game.started_at = datetime.now(timezone.utc) + timedelta(seconds=countdown_sec)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Failed to start game') from exc
    logger.info(f"[start] game={game.id} code={game.game_code} countdown={countdown_sec}s")
    return game
