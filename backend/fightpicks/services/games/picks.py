"""Player picks: at most one per (player, fight), writable only while the game is open."""
import logging
from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from fightpicks import db
from fightpicks.errors import LockedError, NotFoundError, StoreError, ValidationError
from fightpicks.models import Fight, Game, Pick
from fightpicks.services.games.outcomes import parse_choice
from fightpicks.services.games.session import get_player, picks_locked

logger = logging.getLogger(__name__)

_PICK_FIELDS = ('pick_winner', 'pick_method', 'pick_round', 'updated_at')


def _parse_entries(entries):
    if not isinstance(entries, list) or not entries:
        raise ValidationError('No picks to save')
    parsed = {}
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f'Pick #{position} is malformed')
        fight_id = entry.get('fight_id', entry.get('fightId'))
        try:
            fight_id = int(fight_id)
        except (TypeError, ValueError):
            raise ValidationError(f'Pick #{position} is missing a valid fight_id') from None
        choice = parse_choice(entry.get('winner'), entry.get('method'), entry.get('round'))
        # Later entries for the same fight replace earlier ones
        parsed[fight_id] = choice
    return parsed


def _upsert_statement(rows):
    """INSERT ... ON CONFLICT (player_id, fight_id) DO UPDATE for the bound dialect."""
    dialect = db.session.get_bind().dialect.name
    if dialect == 'postgresql':
        insert = postgresql.insert
    elif dialect == 'sqlite':
        insert = sqlite.insert
    else:
        raise StoreError(f'Unsupported database dialect {dialect!r}')
    stmt = insert(Pick.__table__).values(rows)
    return stmt.on_conflict_do_update(
        index_elements=['player_id', 'fight_id'],
        set_={name: stmt.excluded[name] for name in _PICK_FIELDS},
    )


def submit_picks(player_id, entries) -> int:
    """Save a player's picks as one all-or-nothing batch.

    Each entry fully replaces the stored pick for that fight. Awarded points
    are never touched here; they stay null until the fight is decided.
    Returns the number of picks saved.
    """
    picks = _parse_entries(entries)
    player = get_player(player_id)

    try:
        # Shared lock: start_game takes an exclusive lock on the same row
        game = Game.query.filter_by(id=player.game_id).with_for_update(read=True).populate_existing().first()
        if game is None:
            raise NotFoundError('Game not found (try rejoining the game)')
        if picks_locked(game):
            raise LockedError('Picks are locked: the game has already started')

        fight_ids = set(picks)
        known = {
            fid for (fid,) in db.session.query(Fight.id).filter(Fight.game_id == game.id, Fight.id.in_(fight_ids))
        }
        missing = sorted(fight_ids - known)
        if missing:
            raise NotFoundError(f'Fight(s) not found in this game: {", ".join(str(m) for m in missing)}')

        now = datetime.now(timezone.utc)
        rows = [
            {
                'player_id': player.id,
                'fight_id': fight_id,
                'pick_winner': choice.winner,
                'pick_method': choice.method,
                'pick_round': choice.round,
                'updated_at': now,
            }
            for fight_id, choice in sorted(picks.items())
        ]
        db.session.execute(_upsert_statement(rows))
        db.session.commit()
    except (LockedError, NotFoundError, StoreError):
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception(f"[picks] player={player.id} save failed")
        raise StoreError('Failed to save picks') from exc

    logger.info(f"[picks] player={player.id} game={player.game_id} saved={len(rows)}")
    return len(rows)


def get_player_picks(player_id, game: Game = None) -> dict:
    """A player's card: their picks keyed by fight and their running total."""
    player = get_player(player_id, game)
    picks = Pick.query.filter_by(player_id=player.id).order_by(Pick.fight_id).all()
    return {
        'player': player.to_dict(),
        'picks': [p.to_dict() for p in picks],
        'total_points': sum(p.points_awarded or 0 for p in picks),
    }
