"""Round scores, goal progress and match settlement."""

from __future__ import annotations

from dataclasses import dataclass

from ccbalance.models import Actor, Goal

MAX_ROUND_SCORE = 30.0


def round_score(shift: float, goal: Goal) -> float:
    """Score of one actor for a round that ended at ``shift``.

    0 shift gives both actors the baseline 5. Otherwise the actor whose goal
    matches the shift direction scores 10-30, the other 0-5.
    """
    if shift == 0:
        return 5.0
    direction = Goal.FORWARD if shift > 0 else Goal.REVERSE
    magnitude = abs(shift)
    if direction is goal:
        return 10.0 + min(magnitude * 10.0, 20.0)
    return max(0.0, 5.0 - magnitude * 5.0)


def goal_progress(shift: float, goal: Goal) -> float:
    """How far ``shift`` sits toward ``goal``, in percent (50 at equilibrium)."""
    value = (shift + 1.0) / 2.0 if goal is Goal.FORWARD else (1.0 - shift) / 2.0
    return min(100.0, max(0.0, value * 100.0))


def is_winning(shift: float, goal: Goal) -> bool:
    return (goal is Goal.FORWARD and shift > 0) or (goal is Goal.REVERSE and shift < 0)


def distance_to_goal(shift: float, goal: Goal) -> float:
    """0 when fully at the goal, 2 when fully at the opposite side."""
    return 1.0 - shift if goal is Goal.FORWARD else 1.0 + shift


def star_rating(player_total: float, opponent_total: float) -> int:
    if player_total < opponent_total:
        return 0
    stars = 1
    difference = player_total - opponent_total
    if difference >= 10:
        stars += 1
    if difference >= 30:
        stars += 1
    return min(3, stars)


@dataclass
class ScoreAccumulator:
    player: float = 0.0
    opponent: float = 0.0

    def add(self, player: float, opponent: float) -> None:
        self.player += player
        self.opponent += opponent

    def reset(self) -> None:
        self.player = 0.0
        self.opponent = 0.0

    def for_actor(self, actor: Actor) -> float:
        return self.player if actor is Actor.HUMAN else self.opponent

    @property
    def winner(self) -> Actor:
        # Ties go to the human.
        return Actor.HUMAN if self.player >= self.opponent else Actor.OPPONENT

    @property
    def stars(self) -> int:
        return star_rating(self.player, self.opponent)

    def achievement(self, max_rounds: int) -> float:
        """Winner's total as a percentage of the best possible total."""
        best = max(1.0, max_rounds * MAX_ROUND_SCORE)
        return min(100.0, self.for_actor(self.winner) / best * 100.0)
