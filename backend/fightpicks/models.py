from fightpicks import db
from datetime import datetime, timezone
import string
import random

# No O/0 or I/1 so codes survive being read aloud
GAME_CODE_ALPHABET = ''.join(c for c in string.ascii_uppercase + string.digits if c not in 'O0I1')

STATUS_OPEN = 'open'
STATUS_RUNNING = 'running'
STATUS_CONCLUDED = 'concluded'


def _utcnow():
    return datetime.now(timezone.utc)


def _isoformat(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def generate_game_code(length=5):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(GAME_CODE_ALPHABET, k=length))
        if not Game.query.filter_by(game_code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(8), unique=True, index=True, nullable=False)
    name = db.Column(db.String(128), nullable=False)
    host_name = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), default=STATUS_OPEN, nullable=False)  # open, running
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    fights = db.relationship('Fight', back_populates='game', order_by='Fight.order_index')
    players = db.relationship('Player', back_populates='game', order_by='Player.id')

    def __init__(self, code_length=5, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.game_code:
            self.game_code = generate_game_code(code_length)
        if not self.status:
            self.status = STATUS_OPEN

    @property
    def host(self):
        """The first player created for a game is its host."""
        return self.players[0] if self.players else None

    def to_dict(self):
        return {
            'id': self.id,
            'game_code': self.game_code,
            'name': self.name,
            'host_name': self.host_name,
            'status': self.status,
            'started_at': _isoformat(self.started_at),
        }


class Fight(db.Model):
    __tablename__ = 'fight'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    fighter_a = db.Column(db.String(128), nullable=False)
    fighter_b = db.Column(db.String(128), nullable=False)
    country_a = db.Column(db.String(8), nullable=True)
    country_b = db.Column(db.String(8), nullable=True)
    order_index = db.Column(db.Integer, nullable=False)
    result_winner = db.Column(db.String(1), nullable=True)   # A, B
    result_method = db.Column(db.String(8), nullable=True)   # KO, SUB, DEC
    result_round = db.Column(db.Integer, nullable=True)      # 1..5
    result_version = db.Column(db.Integer, default=0, nullable=False)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    game = db.relationship('Game', back_populates='fights')
    picks = db.relationship('Pick', back_populates='fight', lazy='dynamic')

    __table_args__ = (
        db.UniqueConstraint('game_id', 'order_index', name='uq_fight_game_order'),
    )

    @property
    def outcome(self):
        from fightpicks.services.games.outcomes import FightOutcome
        return FightOutcome(self.result_winner, self.result_method, self.result_round)

    @property
    def is_decided(self):
        return self.outcome.is_decided

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'fighter_a': self.fighter_a,
            'fighter_b': self.fighter_b,
            'country_a': self.country_a,
            'country_b': self.country_b,
            'order_index': self.order_index,
            'result_winner': self.result_winner,
            'result_method': self.result_method,
            'result_round': self.result_round,
            'result_version': self.result_version,
            'is_decided': self.is_decided,
        }


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    display_name = db.Column(db.String(64), nullable=False)
    is_ready = db.Column(db.Boolean, default=False, nullable=False)
    # Derived cache of sum(Pick.points_awarded); written only by the rescoring coordinator
    _total_points = db.Column('total_points', db.Integer, default=0, nullable=False)
    photo_ref = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    game = db.relationship('Game', back_populates='players')
    picks = db.relationship('Pick', back_populates='player', lazy='dynamic')

    @property
    def total_points(self):
        return self._total_points or 0

    def to_dict(self):
        host = self.game.host if self.game else None
        return {
            'id': self.id,
            'game_id': self.game_id,
            'display_name': self.display_name,
            'is_ready': bool(self.is_ready),
            'is_host': host is not None and host.id == self.id,
            'total_points': self.total_points,
            'photo_ref': self.photo_ref,
        }


class Pick(db.Model):
    __tablename__ = 'pick'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    fight_id = db.Column(db.Integer, db.ForeignKey('fight.id'), nullable=False, index=True)
    pick_winner = db.Column(db.String(1), nullable=True)
    pick_method = db.Column(db.String(8), nullable=True)
    pick_round = db.Column(db.Integer, nullable=True)
    # Null until the fight is decided; written only by the rescoring coordinator
    _points_awarded = db.Column('points_awarded', db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    player = db.relationship('Player', back_populates='picks')
    fight = db.relationship('Fight', back_populates='picks')

    __table_args__ = (
        db.UniqueConstraint('player_id', 'fight_id', name='uq_pick_player_fight'),
    )

    @property
    def points_awarded(self):
        return self._points_awarded

    @property
    def choice(self):
        from fightpicks.services.games.outcomes import PickChoice
        return PickChoice(self.pick_winner, self.pick_method, self.pick_round)

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'fight_id': self.fight_id,
            'pick_winner': self.pick_winner,
            'pick_method': self.pick_method,
            'pick_round': self.pick_round,
            'points_awarded': self.points_awarded,
        }
