import random
from dataclasses import dataclass
from typing import Optional

ROCK = 'rock'
PAPER = 'paper'
SCISSORS = 'scissors'
CHOICES = (ROCK, PAPER, SCISSORS)

EMOJIS = {
    ROCK: '\U0001FAA8',
    PAPER: '\U0001F4C4',
    SCISSORS: '✂️',
}

# choice -> (choice it beats, verb)
RULES = {
    ROCK: (SCISSORS, 'crushes'),
    PAPER: (ROCK, 'covers'),
    SCISSORS: (PAPER, 'cuts'),
}

DRAW = 'draw'
WIN_INITIATOR = 'win_initiator'
WIN_OPPONENT = 'win_opponent'
ERROR = 'error'


@dataclass(frozen=True)
class Outcome:
    verdict: str
    description: str
    initiator_choice: Optional[str]
    opponent_choice: Optional[str]

    @property
    def is_error(self) -> bool:
        return self.verdict == ERROR

    def to_dict(self):
        return {
            'verdict': self.verdict,
            'description': self.description,
            'initiator_choice': self.initiator_choice,
            'opponent_choice': self.opponent_choice,
        }


def _normalize(choice) -> Optional[str]:
    value = str(choice).strip().lower() if choice is not None else None
    return value if value in CHOICES else None


def _beat_line(winner_name: str, winner: str, loser: str) -> str:
    verb = RULES[winner][1]
    return f"{winner_name}'s {winner} {EMOJIS[winner]} {verb} {loser} {EMOJIS[loser]}!"


def resolve(initiator_choice, opponent_choice, initiator_name: str = 'Player 1', opponent_name: str = 'Player 2') -> Outcome:
    """Compare two choices.

    Returns an ``error`` verdict instead of raising when either value is
    outside the closed choice set; callers fail the session closed.
    """
    a = _normalize(initiator_choice)
    b = _normalize(opponent_choice)
    if a is None or b is None:
        return Outcome(ERROR, 'An internal error occurred.', initiator_choice, opponent_choice)
    if a == b:
        return Outcome(DRAW, "It's a Draw!", a, b)
    if RULES[a][0] == b:
        return Outcome(WIN_INITIATOR, _beat_line(initiator_name, a, b), a, b)
    return Outcome(WIN_OPPONENT, _beat_line(opponent_name, b, a), a, b)


def random_choice(rng=None) -> str:
    return (rng or random).choice(CHOICES)
