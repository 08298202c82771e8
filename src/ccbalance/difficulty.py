"""Opponent difficulty tiers."""

from __future__ import annotations

from dataclasses import dataclass

MIN_TIER = 1
MAX_TIER = 4
OPPONENT_DISABLED = 0


@dataclass(frozen=True)
class DifficultyProfile:
    """How the opponent behaves at one tier."""

    randomness: float
    top_k: int
    act_chance: float
    allow_concentration: bool
    allow_temperature: bool
    allow_pressure: bool


_PROFILES = {
    1: DifficultyProfile(0.85, 5, 0.20, True, False, False),
    2: DifficultyProfile(0.40, 3, 0.55, True, True, False),
    3: DifficultyProfile(0.10, 2, 0.95, True, True, True),
    4: DifficultyProfile(0.02, 1, 1.00, True, True, True),
}

# Lower multiplier at harder tiers: the opponent acts more often.
_COOLDOWN_MULTIPLIERS = {1: 5.0, 2: 3.0, 3: 1.0, 4: 0.5}

_DECISION_INTERVALS = {1: 1.20, 2: 0.65, 3: 0.42, 4: 0.26}


def clamp_tier(tier: int | None) -> int:
    if tier is None:
        return 2
    return min(MAX_TIER, max(MIN_TIER, int(tier)))


def profile_for_tier(tier: int | None) -> DifficultyProfile:
    return _PROFILES[clamp_tier(tier)]


def cooldown_multiplier(tier: int | None) -> float:
    return _COOLDOWN_MULTIPLIERS[clamp_tier(tier)]


def decision_interval(tier: int | None) -> float:
    """Seconds between two opponent decision ticks."""
    return _DECISION_INTERVALS[clamp_tier(tier)]
