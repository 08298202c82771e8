"""Heuristic opponent: picks at most one intervention per decision tick.

Each tick the engine builds the interventions its difficulty profile allows,
drops those still cooling down, simulates every physical one on a copy of the
reaction state and scores the result with the round-score formula for its
own goal. Abilities are scored with a fixed benefit heuristic instead. The
ranking is (score, |simulated shift|) descending; a difficulty-dependent
chance picks uniformly among the top ``top_k`` instead of the best.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np

from ccbalance.abilities import BUFFER, CATALYST, HEAT_EXCHANGE, QUANTUM
from ccbalance.difficulty import DifficultyProfile, clamp_tier, profile_for_tier
from ccbalance.interventions import (
    AddSpecies,
    Cool,
    Depressurize,
    Heat,
    Intervention,
    InterventionSteps,
    Pressurize,
    UseAbility,
)
from ccbalance.models import Goal
from ccbalance.scoring import distance_to_goal, is_winning, round_score
from ccbalance.state import ReactionState

logger = logging.getLogger(__name__)

ABILITY_MIN_TIER = 2


@dataclass(frozen=True)
class Candidate:
    intervention: Intervention
    score: float
    tie_break: float = 0.0


@dataclass(frozen=True)
class StateAnalysis:
    shift: float
    winning: bool
    distance: float
    temperature_effect: float


@dataclass(frozen=True)
class DecisionContext:
    """Everything the engine may read for one decision."""

    state: ReactionState
    goal: Goal
    tier: int
    is_available: Callable[[str], bool]
    abilities: Sequence[str] = ()
    scale: float = 1.0
    steps: InterventionSteps = field(default_factory=InterventionSteps)


def analyze(state: ReactionState, goal: Goal) -> StateAnalysis:
    return StateAnalysis(
        shift=state.shift,
        winning=is_winning(state.shift, goal),
        distance=distance_to_goal(state.shift, goal),
        temperature_effect=abs(state.definition.delta_h) / 100.0,
    )


def ability_benefit(ability_id: str, analysis: StateAnalysis) -> float:
    """Fixed desirability of an ability in the current situation."""
    if ability_id == CATALYST:
        return analysis.distance * 0.8
    if ability_id == BUFFER:
        # Protect a lead.
        return 0.6 if analysis.winning else 0.1
    if ability_id == HEAT_EXCHANGE:
        return 0.7 if analysis.temperature_effect > 0.3 else 0.2
    if ability_id == QUANTUM:
        # Gamble only when clearly behind.
        return 0.9 if not analysis.winning and analysis.distance > 0.7 else 0.05
    return 0.3


def simulate(
    state: ReactionState,
    intervention: Intervention,
    steps: InterventionSteps,
    scale: float = 1.0,
) -> ReactionState:
    """One-step effect of ``intervention`` on a copy of ``state``."""
    trial = state.copy()
    intervention.apply(trial, steps, scale)
    return trial


class OpponentEngine:
    """Local-search decision maker for one side of a match.

    The engine holds no game state: everything comes in through a
    :class:`DecisionContext`, and the chosen :class:`Candidate` goes back to
    the caller, which commits it through the ordinary request path.
    """

    def __init__(self, rng: np.random.Generator | None = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def candidates(self, context: DecisionContext, profile: DifficultyProfile) -> list[Intervention]:
        definition = context.state.definition
        options: list[Intervention] = []
        if profile.allow_concentration:
            options.extend(AddSpecies(species) for species in definition.favored_species(context.goal))
        if profile.allow_temperature:
            options.extend((Heat(), Cool()))
        if profile.allow_pressure and definition.is_gas_phase:
            options.extend((Pressurize(), Depressurize()))
        if clamp_tier(context.tier) >= ABILITY_MIN_TIER:
            options.extend(UseAbility(ability_id) for ability_id in context.abilities)

        return [
            option
            for option in options
            if not (isinstance(option, AddSpecies) and not option.species)
            and context.is_available(option.identity)
        ]

    def score(self, context: DecisionContext, options: Sequence[Intervention]) -> list[Candidate]:
        analysis = analyze(context.state, context.goal)
        scored = []
        for option in options:
            if isinstance(option, UseAbility):
                scored.append(Candidate(option, ability_benefit(option.ability_id, analysis), 0.0))
                continue
            trial = simulate(context.state, option, context.steps, context.scale)
            scored.append(Candidate(option, round_score(trial.shift, context.goal), abs(trial.shift)))
        scored.sort(key=lambda c: (c.score, c.tie_break), reverse=True)
        return scored

    def decide(self, context: DecisionContext) -> Candidate | None:
        profile = profile_for_tier(context.tier)
        if self.rng.random() > profile.act_chance:
            return None

        ranked = self.score(context, self.candidates(context, profile))
        if not ranked:
            return None

        top_k = max(1, min(profile.top_k, len(ranked)))
        if profile.randomness > 0 and self.rng.random() < profile.randomness:
            choice = ranked[int(self.rng.integers(top_k))]
        else:
            choice = ranked[0]
        logger.debug(
            "decided %s (score %.2f) among %d candidates", choice.intervention.identity, choice.score, len(ranked)
        )
        return choice
