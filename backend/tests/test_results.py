import pytest
from sqlalchemy.exc import OperationalError

from fightpicks import db
from fightpicks.errors import StoreError
from fightpicks.models import Fight, Pick, Player
from fightpicks.services.games import results
from fightpicks.services.games.picks import submit_picks
from fightpicks.services.games.results import record_result, rescore_game
from fightpicks.services.games.session import create_game, join_game, start_game
from fightpicks.services.games.standings import get_standings

CARD = [
    {'fighter_a': 'Alpha', 'fighter_b': 'Bravo'},
    {'fighter_a': 'Charlie', 'fighter_b': 'Delta'},
    {'fighter_a': 'Echo', 'fighter_b': 'Foxtrot'},
]


def _setup(names=('Ann', 'Bob')):
    game, host = create_game('Night', 'Host', fights=CARD)
    fight_ids = [f.id for f in game.fights]
    player_ids = [join_game(game.game_code, name).id for name in names]
    return game.id, game.game_code, host.id, fight_ids, player_ids


def _points(player_id):
    return {p.fight_id: p.points_awarded for p in Pick.query.filter_by(player_id=player_id)}


def _total(player_id):
    return db.session.get(Player, player_id).total_points


def test_total_always_equals_sum_of_picks(flask_app):
    game_id, code, host_id, fights, (ann, bob) = _setup()
    submit_picks(ann, [
        {'fight_id': fights[0], 'winner': 'A', 'method': 'KO', 'round': 1},
        {'fight_id': fights[1], 'winner': 'B', 'method': 'DEC', 'round': 3},
        {'fight_id': fights[2], 'winner': 'A'},
    ])
    submit_picks(bob, [
        {'fight_id': fights[0], 'winner': 'B', 'method': 'KO', 'round': 2},
        {'fight_id': fights[2], 'method': 'SUB', 'round': 2},
    ])
    start_game(code, host_id)

    record_result(fights[0], 'A', 'KO', 1)
    record_result(fights[2], 'B', 'SUB', 2)
    record_result(fights[0], 'B', 'KO', 2)  # correction
    record_result(fights[1], 'B', 'DEC', 3)

    for player_id in (ann, bob):
        assert _total(player_id) == sum(v or 0 for v in _points(player_id).values())
    assert _points(ann) == {fights[0]: 300, fights[1]: 900, fights[2]: 0}
    assert _points(bob) == {fights[0]: 900, fights[2]: 800}
    assert _total(ann) == 1200
    assert _total(bob) == 1700


def test_only_players_with_picks_on_the_fight_are_touched(flask_app):
    game_id, code, host_id, fights, (ann, bob) = _setup()
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A'}])
    submit_picks(bob, [{'fight_id': fights[1], 'winner': 'A'}])
    start_game(code, host_id)
    summary = record_result(fights[0], winner='A')
    assert summary.picks_scored == 1
    assert summary.players_updated == 1
    assert [c.player_id for c in summary.changes] == [ann]
    # picks on undecided fights stay unscored
    assert _points(bob) == {fights[1]: None}


def test_failed_total_does_not_block_other_players(flask_app, monkeypatch):
    game_id, code, host_id, fights, (ann, bob) = _setup()
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A'}])
    submit_picks(bob, [{'fight_id': fights[0], 'winner': 'A', 'method': 'KO'}])
    start_game(code, host_id)

    real_store = results._store_player_total

    def flaky_store(player_id):
        if player_id == ann:
            raise OperationalError('UPDATE player', {}, Exception('connection reset'))
        return real_store(player_id)

    monkeypatch.setattr(results, '_store_player_total', flaky_store)
    summary = record_result(fights[0], winner='A', method='KO')
    assert summary.picks_scored == 2
    assert summary.players_updated == 1
    assert summary.players_failed == [ann]
    # Pick points are durable even though Ann's cached total is stale
    assert _points(ann) == {fights[0]: 100}
    assert _total(ann) == 0
    assert _total(bob) == 400

    monkeypatch.setattr(results, '_store_player_total', real_store)
    repaired = rescore_game(game_id)
    assert repaired['fights_rescored'] == 1
    assert repaired['picks_corrected'] == 0
    assert repaired['players_failed'] == []
    assert _total(ann) == 100


def test_total_survives_interleaved_result_writes(flask_app, monkeypatch):
    game_id, code, host_id, fights, (ann, _) = _setup()
    submit_picks(ann, [
        {'fight_id': fights[0], 'winner': 'A'},
        {'fight_id': fights[1], 'winner': 'A'},
    ])
    start_game(code, host_id)

    real_lock = results._lock_player
    interleaved = []

    def lock_then_other_result_lands(player_id):
        row = real_lock(player_id)
        if player_id == ann and not interleaved:
            interleaved.append(player_id)
            # a second result for the same player commits both phases in between
            record_result(fights[1], winner='A')
        return row

    monkeypatch.setattr(results, '_lock_player', lock_then_other_result_lands)
    record_result(fights[0], winner='A')

    assert interleaved == [ann]
    assert _points(ann) == {fights[0]: 100, fights[1]: 100}
    assert _total(ann) == 200


def test_recording_same_result_twice_leaves_fight_unchanged(flask_app):
    game_id, code, host_id, fights, (ann, _) = _setup()
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A'}])
    start_game(code, host_id)

    record_result(fights[0], winner='A')
    fight = db.session.get(Fight, fights[0])
    first = (fight.to_dict(), fight.decided_at)
    record_result(fights[0], winner='A')
    fight = db.session.get(Fight, fights[0])
    assert (fight.to_dict(), fight.decided_at) == first
    assert fight.result_version == 1

    record_result(fights[0], winner='B')
    assert db.session.get(Fight, fights[0]).result_version == 2
    assert _total(ann) == 0


def test_rescore_game_does_not_touch_recorded_results(flask_app):
    game_id, code, host_id, fights, (ann, _) = _setup()
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A', 'method': 'KO'}])
    start_game(code, host_id)
    record_result(fights[0], winner='A', method='KO')
    before = db.session.get(Fight, fights[0])
    before = (before.to_dict(), before.decided_at)

    summary = rescore_game(game_id)
    after = db.session.get(Fight, fights[0])
    assert (after.to_dict(), after.decided_at) == before
    assert summary['picks_scored'] == 1
    assert summary['picks_corrected'] == 0
    assert _total(ann) == 400


def test_result_write_retries_transient_errors(flask_app, monkeypatch):
    game_id, code, host_id, fights, (ann, _) = _setup()
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A'}])
    start_game(code, host_id)

    real_write = results._write_fight_result
    calls = []

    def locked_once(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError('UPDATE fight', {}, Exception('database is locked'))
        return real_write(*args, **kwargs)

    monkeypatch.setattr(results, '_write_fight_result', locked_once)
    summary = record_result(fights[0], winner='A')
    assert len(calls) == 2
    assert summary.picks_scored == 1
    assert _total(ann) == 100


def test_result_write_gives_up_with_store_error(flask_app, monkeypatch):
    flask_app.config['RESULT_WRITE_ATTEMPTS'] = 2
    game_id, code, host_id, fights, (ann, _) = _setup()
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A'}])
    start_game(code, host_id)
    calls = []

    def always_locked(*args, **kwargs):
        calls.append(1)
        raise OperationalError('UPDATE fight', {}, Exception('database is locked'))

    monkeypatch.setattr(results, '_write_fight_result', always_locked)
    with pytest.raises(StoreError):
        record_result(fights[0], winner='A')
    assert len(calls) == 2
    assert _points(ann) == {fights[0]: None}


def test_totals_are_read_only_outside_the_coordinator(flask_app):
    game_id, code, host_id, fights, (ann, _) = _setup()
    player = db.session.get(Player, ann)
    with pytest.raises(AttributeError):
        player.total_points = 5000
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A'}])
    pick = Pick.query.filter_by(player_id=ann).one()
    with pytest.raises(AttributeError):
        pick.points_awarded = 900


def test_standings_tie_break_is_case_sensitive_name_order(flask_app):
    game_id, code, host_id, fights, players = _setup(names=('bob', 'alice', 'Bob'))
    standings = get_standings(game_id)
    assert [s['display_name'] for s in standings] == ['Bob', 'Host', 'alice', 'bob']
    assert {s['rank'] for s in standings} == {1}


def test_standings_rank_by_total(flask_app):
    game_id, code, host_id, fights, (ann, bob) = _setup(names=('Ann', 'Bob'))
    submit_picks(ann, [{'fight_id': fights[0], 'winner': 'A'}])
    submit_picks(bob, [{'fight_id': fights[0], 'winner': 'A', 'round': 3}])
    start_game(code, host_id)
    record_result(fights[0], winner='A', round=3)
    standings = get_standings(game_id)
    assert [(s['display_name'], s['total_points'], s['rank']) for s in standings] == [
        ('Bob', 600, 1),
        ('Ann', 100, 2),
        ('Host', 0, 3),
    ]
