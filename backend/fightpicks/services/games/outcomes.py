"""Official results and player picks.

Each of winner / method / round is independently optional. Client input is
normalised here once so the rest of the code never sees empty-string
sentinels or rounds typed as strings.
"""
from dataclasses import dataclass
from typing import Optional

from fightpicks.errors import ValidationError

WINNERS = ('A', 'B')
METHODS = ('KO', 'SUB', 'DEC')
METHOD_ALIASES = {
    'KO/TKO': 'KO',
    'TKO': 'KO',
    'SUBMISSION': 'SUB',
    'DECISION': 'DEC',
}
MAX_ROUND = 5


@dataclass(frozen=True)
class FightOutcome:
    winner: Optional[str] = None
    method: Optional[str] = None
    round: Optional[int] = None

    @property
    def is_decided(self) -> bool:
        return any(v is not None for v in (self.winner, self.method, self.round))


@dataclass(frozen=True)
class PickChoice:
    winner: Optional[str] = None
    method: Optional[str] = None
    round: Optional[int] = None


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_winner(value) -> Optional[str]:
    if _blank(value):
        return None
    winner = str(value).strip().upper()
    if winner not in WINNERS:
        raise ValidationError(f'Invalid winner {value!r}: expected one of {", ".join(WINNERS)}')
    return winner


def parse_method(value) -> Optional[str]:
    if _blank(value):
        return None
    method = str(value).strip().upper()
    method = METHOD_ALIASES.get(method, method)
    if method not in METHODS:
        raise ValidationError(f'Invalid method {value!r}: expected one of {", ".join(METHODS)}')
    return method


def parse_round(value) -> Optional[int]:
    """Rounds compare as integers, so '3' and '03' are the same round."""
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f'Invalid round {value!r}')
    try:
        rnd = int(str(value).strip())
    except ValueError:
        raise ValidationError(f'Invalid round {value!r}') from None
    if not 1 <= rnd <= MAX_ROUND:
        raise ValidationError(f'Round must be between 1 and {MAX_ROUND}')
    return rnd


def parse_outcome(winner=None, method=None, round=None) -> FightOutcome:
    return FightOutcome(parse_winner(winner), parse_method(method), parse_round(round))


def parse_choice(winner=None, method=None, round=None) -> PickChoice:
    return PickChoice(parse_winner(winner), parse_method(method), parse_round(round))
