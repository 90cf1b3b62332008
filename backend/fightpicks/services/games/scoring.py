from fightpicks.services.games.outcomes import FightOutcome, PickChoice

WINNER_POINTS = 100
METHOD_POINTS = 300
ROUND_POINTS = 500
PERFECT_SCORE = WINNER_POINTS + METHOD_POINTS + ROUND_POINTS


def score_pick(choice: PickChoice, outcome: FightOutcome) -> int:
    """Points for one pick against the fight's official result.

    +100 for the winner, +300 for the method, +500 for the round. The three
    bonuses are independent; an unset field on either side never scores and
    a wrong guess never costs anything.
    """
    points = 0
    if outcome.winner is not None and choice.winner == outcome.winner:
        points += WINNER_POINTS
    if outcome.method is not None and choice.method == outcome.method:
        points += METHOD_POINTS
    if outcome.round is not None and choice.round is not None and int(choice.round) == int(outcome.round):
        points += ROUND_POINTS
    return points


def classify_reaction(points) -> str:
    """Label clients use for the one-time reaction when a pick is first scored."""
    if not points:
        return 'miss'
    if points >= PERFECT_SCORE:
        return 'jackpot'
    return 'partial'
