"""Which fight is "current" on the card.

Two policies are supported because hosts run events two ways:

- ``forward``: the current fight is the first undecided one in card order
  (lowest ``order_index`` first) and the host may score any fight at any time.
- ``reverse_strict``: the current fight is found by scanning from the last
  fight backward for the first undecided one, and only that fight may receive
  a new result. Fights that are already decided may still be corrected.
"""
from typing import List, Optional, Sequence, Tuple

from fightpicks.errors import OrderingError, ValidationError

POLICY_FORWARD = 'forward'
POLICY_REVERSE_STRICT = 'reverse_strict'
POLICIES = (POLICY_FORWARD, POLICY_REVERSE_STRICT)

DECIDED = 'decided'
CURRENT = 'current'
UPCOMING = 'upcoming'


def resolve_policy(policy: Optional[str]) -> str:
    policy = (policy or POLICY_FORWARD).strip().lower()
    if policy not in POLICIES:
        raise ValidationError(f'Unknown progression policy {policy!r}')
    return policy


def _card_order(fights: Sequence) -> list:
    return sorted(fights, key=lambda f: f.order_index)


def current_fight(fights: Sequence, policy: Optional[str] = None):
    """The single current fight, or None once every fight is decided."""
    ordered = _card_order(fights)
    if resolve_policy(policy) == POLICY_REVERSE_STRICT:
        ordered = list(reversed(ordered))
    for fight in ordered:
        if not fight.is_decided:
            return fight
    return None


def classify_fights(fights: Sequence, policy: Optional[str] = None) -> List[Tuple[object, str]]:
    """Pair every fight (in card order) with decided / current / upcoming."""
    current = current_fight(fights, policy)
    classified = []
    for fight in _card_order(fights):
        if fight.is_decided:
            state = DECIDED
        elif current is not None and fight.id == current.id:
            state = CURRENT
        else:
            state = UPCOMING
        classified.append((fight, state))
    return classified


def check_scoring_order(fights: Sequence, fight, policy: Optional[str] = None) -> None:
    """Raise OrderingError if the policy does not allow scoring ``fight`` now."""
    if resolve_policy(policy) != POLICY_REVERSE_STRICT:
        return
    if fight.is_decided:
        return
    unlocked = current_fight(fights, policy)
    if unlocked is None or unlocked.id != fight.id:
        expected = f'fight {unlocked.id} ({unlocked.fighter_a} vs {unlocked.fighter_b})' if unlocked else 'none'
        raise OrderingError(f'Fights must be scored in order; next to score is {expected}')
