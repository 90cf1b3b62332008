"""Recording official results and rescoring picks.

This module is the only writer of ``pick.points_awarded`` and
``player.total_points``. A result write runs in two phases:

1. One transaction, holding a row lock on the fight, replaces the fight's
   result and rewrites the points of every pick on it. Either all of it
   lands or none of it does.
2. Each affected player's total is recomputed from scratch as the sum of
   their picks, one player per transaction, under a row lock on the player
   with the sum taken inside the UPDATE. A failure here is logged and
   counted, never raised: the pick points from phase 1 are the record of
   truth and a later rescore repairs any stale total.

Totals are never incremented, so concurrent result writes that touch the
same player converge on the correct sum whatever order they commit in.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from fightpicks import db
from fightpicks.errors import GameError, NotFoundError, NotStartedError, StoreError, ValidationError
from fightpicks.models import STATUS_OPEN, Fight, Game, Pick, Player
from fightpicks.services.games import notify
from fightpicks.services.games.outcomes import FightOutcome, parse_outcome
from fightpicks.services.games.progression import check_scoring_order
from fightpicks.services.games.scoring import score_pick
from fightpicks.services.games.standings import get_standings

logger = logging.getLogger(__name__)

_picks = Pick.__table__
_players = Player.__table__


@dataclass(frozen=True)
class PickScoreChange:
    pick_id: int
    player_id: int
    fight_id: int
    previous_points: Optional[int]
    points: int


@dataclass
class RescoreSummary:
    fight_id: int
    game_code: str
    picks_scored: int = 0
    players_updated: int = 0
    players_failed: List[int] = field(default_factory=list)
    changes: List[PickScoreChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'success': True,
            'fight_id': self.fight_id,
            'picks_scored': self.picks_scored,
            'players_updated': self.players_updated,
            'players_failed': list(self.players_failed),
        }


def _write_fight_result(fight_id: int, outcome: Optional[FightOutcome], enforce_order: bool = True):
    """Phase 1. Caller owns commit/rollback.

    With ``outcome=None`` the stored result is left as it is and only the
    picks are rescored against it.
    """
    fight = Fight.query.filter_by(id=fight_id).with_for_update().populate_existing().first()
    if fight is None:
        raise NotFoundError(f'Fight {fight_id} not found')
    game = db.session.get(Game, fight.game_id)
    if outcome is None:
        outcome = fight.outcome
    else:
        if game.status == STATUS_OPEN:
            raise NotStartedError('Start the game before recording results')
        if enforce_order:
            fights = Fight.query.filter_by(game_id=game.id).order_by(Fight.order_index).all()
            check_scoring_order(fights, fight, current_app.config.get('PROGRESSION_POLICY'))
        # Same result again: leave version and decided_at alone
        if outcome != fight.outcome:
            fight.result_winner = outcome.winner
            fight.result_method = outcome.method
            fight.result_round = outcome.round
            fight.result_version = (fight.result_version or 0) + 1
            fight.decided_at = datetime.now(timezone.utc) if outcome.is_decided else None
            db.session.flush()

    changes = []
    for pick in Pick.query.filter_by(fight_id=fight.id).populate_existing().all():
        points = score_pick(pick.choice, outcome)
        changes.append(PickScoreChange(pick.id, pick.player_id, fight.id, pick.points_awarded, points))
        db.session.execute(_picks.update().where(_picks.c.id == pick.id).values(points_awarded=points))
    return fight, game, changes


def _run_result_transaction(fight_id: int, outcome: Optional[FightOutcome], enforce_order: bool = True):
    attempts = max(1, int(current_app.config.get('RESULT_WRITE_ATTEMPTS', 3)))
    for attempt in range(1, attempts + 1):
        try:
            fight, game, changes = _write_fight_result(fight_id, outcome, enforce_order)
            game_code = game.game_code
            db.session.commit()
            return game_code, changes
        except GameError:
            db.session.rollback()
            raise
        except OperationalError as exc:
            # Lock timeouts / serialization failures: the whole transaction is safe to replay
            db.session.rollback()
            logger.warning(f"[result-retry] fight={fight_id} attempt={attempt}/{attempts} error={exc.__class__.__name__}")
            if attempt == attempts:
                raise StoreError('Failed to save result, please retry') from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception(f"[result-error] fight={fight_id}")
            raise StoreError('Failed to save result, please retry') from exc


def _lock_player(player_id: int):
    return Player.query.filter_by(id=player_id).with_for_update().populate_existing().first()


def _store_player_total(player_id: int) -> None:
    """Rewrite one player's total as the sum of their picks. Caller owns commit/rollback.

    The player row is locked first and the sum is taken inside the UPDATE
    itself, so the stored value always reflects the picks committed before
    the write. A concurrent recompute for the same player waits on the lock.
    """
    _lock_player(player_id)
    points_sum = (
        select(func.coalesce(func.sum(_picks.c.points_awarded), 0))
        .where(_picks.c.player_id == player_id)
        .scalar_subquery()
    )
    db.session.execute(_players.update().where(_players.c.id == player_id).values(total_points=points_sum))


def refresh_player_totals(player_ids: Iterable[int]):
    """Phase 2: recompute and store each player's total. Returns (updated, failed_ids)."""
    updated = 0
    failed = []
    for player_id in sorted(set(player_ids)):
        try:
            _store_player_total(player_id)
            db.session.commit()
            updated += 1
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception(f"[totals-error] player={player_id}")
            failed.append(player_id)
    return updated, failed


def record_result(fight_id, winner=None, method=None, round=None) -> RescoreSummary:
    """Replace a fight's official result and rescore every pick on it.

    Omitted fields become unset: the stored result always equals the latest
    call's arguments, and calling twice with the same arguments leaves the
    same state as calling once.
    """
    try:
        fight_id = int(fight_id)
    except (TypeError, ValueError):
        raise ValidationError('Missing fightId') from None
    outcome = parse_outcome(winner, method, round)
    if not outcome.is_decided:
        raise ValidationError('Provide at least one of winner, method or round')

    game_code, changes = _run_result_transaction(fight_id, outcome)
    updated, failed = refresh_player_totals(c.player_id for c in changes)
    summary = RescoreSummary(
        fight_id=fight_id,
        game_code=game_code,
        picks_scored=len(changes),
        players_updated=updated,
        players_failed=failed,
        changes=changes,
    )
    logger.info(
        f"[result] fight={fight_id} winner={outcome.winner} method={outcome.method} round={outcome.round} "
        f"picks_scored={summary.picks_scored} players_updated={updated} players_failed={len(failed)}"
    )
    _broadcast(game_code, changes)
    return summary


def rescore_game(game_id: int) -> dict:
    """Full recompute for a game: every decided fight, then every player's total.

    Stored results are not rewritten, and only picks whose points actually
    moved are broadcast.
    """
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFoundError('Game not found')
    game_code = game.game_code
    fights = Fight.query.filter_by(game_id=game_id).order_by(Fight.order_index).all()
    decided = [f.id for f in fights if f.is_decided]
    changes = []
    for fight_id in decided:
        _, fight_changes = _run_result_transaction(fight_id, None, enforce_order=False)
        changes.extend(fight_changes)
    corrected = [c for c in changes if c.previous_points != c.points]
    player_ids = [pid for (pid,) in db.session.query(Player.id).filter(Player.game_id == game_id)]
    updated, failed = refresh_player_totals(player_ids)
    logger.info(
        f"[rescore] game={game_id} fights={len(decided)} picks={len(changes)} corrected={len(corrected)} "
        f"players_updated={updated} players_failed={len(failed)}"
    )
    _broadcast(game_code, corrected)
    return {
        'fights_rescored': len(decided),
        'picks_scored': len(changes),
        'picks_corrected': len(corrected),
        'players_updated': updated,
        'players_failed': failed,
    }


def _broadcast(game_code: str, changes) -> None:
    for change in changes:
        notify.broadcast_pick_scored(game_code, change)
    game = Game.query.filter_by(game_code=game_code).first()
    if game is not None:
        notify.broadcast_standings(game_code, get_standings(game.id))
    notify.broadcast_state(game_code)
