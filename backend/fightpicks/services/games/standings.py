from typing import List

from fightpicks.models import Player


def get_standings(game_id: int) -> List[dict]:
    """Players ranked by cached total, best first.

    Ties break on display name in plain code-point order (sorted here rather
    than in SQL so the database collation cannot change it). Tied totals share
    a rank. Read-only: totals are maintained by the results coordinator.
    """
    players = Player.query.filter_by(game_id=game_id).all()
    ordered = sorted(players, key=lambda p: (-p.total_points, p.display_name))
    standings = []
    rank = 0
    previous_total = None
    for position, player in enumerate(ordered, start=1):
        if player.total_points != previous_total:
            rank = position
            previous_total = player.total_points
        entry = player.to_dict()
        entry['rank'] = rank
        standings.append(entry)
    return standings
