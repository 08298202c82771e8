"""One-shot abilities with round-based cooldowns."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

import numpy as np

from ccbalance.models import Actor, Goal
from ccbalance.state import ReactionState

logger = logging.getLogger(__name__)

CATALYST = "catalyst"
BUFFER = "buffer"
HEAT_EXCHANGE = "heatexchange"
QUANTUM = "quantum"


@dataclass(frozen=True)
class AbilitySpec:
    """Static description of an ability."""

    id: str
    name: str
    description: str
    cooldown_rounds: int
    duration_rounds: int = 0
    magnitude: float = 0.0


ABILITIES: Mapping[str, AbilitySpec] = {
    CATALYST: AbilitySpec(
        CATALYST, "Catalyst", "Pulls the system toward equilibrium", 3, magnitude=0.3
    ),
    BUFFER: AbilitySpec(
        BUFFER, "Buffer", "Halves the other side's interventions for 2 rounds", 4,
        duration_rounds=2, magnitude=0.5,
    ),
    HEAT_EXCHANGE: AbilitySpec(
        HEAT_EXCHANGE, "Heat exchange", "Instant large temperature change toward your goal", 3,
        magnitude=100.0,
    ),
    QUANTUM: AbilitySpec(
        QUANTUM, "Quantum jump", "Randomizes temperature, one concentration and pressure", 5
    ),
}

QUANTUM_TEMPERATURE_SPAN = 80.0
QUANTUM_CONCENTRATION_SPAN = 0.3
QUANTUM_PRESSURE_SPAN = 50.0


@dataclass(frozen=True)
class AbilityEffect:
    ability_id: str
    actor: Actor
    description: str
    changes: Mapping[str, float] = field(default_factory=dict)


@dataclass
class ActiveEffect:
    ability_id: str
    owner: Actor
    rounds_left: int
    factor: float


class AbilityLayer:
    """Availability, effects and lasting modifiers of abilities for both actors.

    Effects mutate the :class:`ReactionState` through its own methods, so K, Q
    and shift are recomputed exactly as for any other intervention. The goal
    of the user is passed in explicitly on every use.
    """

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        specs: Mapping[str, AbilitySpec] = ABILITIES,
        dampening_factor: float | None = None,
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.specs = dict(specs)
        self.dampening_factor = dampening_factor
        self._cooldowns: dict[Actor, dict[str, int]] = {}
        self._effects: list[ActiveEffect] = []
        self.reset()

    def reset(self) -> None:
        self._cooldowns = {actor: {ability_id: 0 for ability_id in self.specs} for actor in Actor}
        self._effects = []

    def is_available(self, ability_id: str, actor: Actor) -> bool:
        rounds = self._cooldowns[actor].get(ability_id)
        return rounds is not None and rounds == 0

    def available(self, actor: Actor) -> list[str]:
        return [ability_id for ability_id in self.specs if self.is_available(ability_id, actor)]

    def cooldown_left(self, ability_id: str, actor: Actor) -> int:
        return self._cooldowns[actor].get(ability_id, 0)

    def tick_cooldowns(self) -> None:
        """Advance every cooldown and lasting effect by one round boundary."""
        for slots in self._cooldowns.values():
            for ability_id, rounds in slots.items():
                if rounds > 0:
                    slots[ability_id] = rounds - 1
        for effect in self._effects:
            effect.rounds_left -= 1
        self._effects = [effect for effect in self._effects if effect.rounds_left > 0]

    def magnitude_multiplier(self, actor: Actor) -> float:
        """Scale applied to ``actor``'s interventions by the other side's buffer."""
        multiplier = 1.0
        for effect in self._effects:
            if effect.ability_id == BUFFER and effect.owner is actor.other:
                multiplier = min(multiplier, effect.factor)
        return multiplier

    def is_protected(self, actor: Actor) -> bool:
        return any(e.ability_id == BUFFER and e.owner is actor for e in self._effects)

    def use(self, ability_id: str, actor: Actor, state: ReactionState, goal: Goal) -> AbilityEffect | None:
        """Apply ``ability_id`` for ``actor`` and start its cooldown.

        Returns None, without side effects, if the ability is unknown or still
        cooling down.
        """
        if not self.is_available(ability_id, actor):
            return None
        spec = self.specs[ability_id]
        self._cooldowns[actor][ability_id] = spec.cooldown_rounds

        if ability_id == CATALYST:
            effect = self._catalyst(spec, actor, state)
        elif ability_id == BUFFER:
            effect = self._buffer(spec, actor)
        elif ability_id == HEAT_EXCHANGE:
            effect = self._heat_exchange(spec, actor, state, goal)
        elif ability_id == QUANTUM:
            effect = self._quantum(spec, actor, state)
        else:
            effect = AbilityEffect(ability_id, actor, spec.description)
        logger.debug("%s used %s: %s", actor.value, ability_id, effect.description)
        return effect

    def _catalyst(self, spec: AbilitySpec, actor: Actor, state: ReactionState) -> AbilityEffect:
        before = state.shift
        state.relax(spec.magnitude)
        return AbilityEffect(
            spec.id, actor, "Reaction accelerated toward equilibrium",
            {"shift": state.shift - before},
        )

    def _buffer(self, spec: AbilitySpec, actor: Actor) -> AbilityEffect:
        factor = self.dampening_factor if self.dampening_factor is not None else spec.magnitude
        self._effects = [
            e for e in self._effects if not (e.ability_id == BUFFER and e.owner is actor)
        ]
        self._effects.append(ActiveEffect(spec.id, actor, spec.duration_rounds, factor))
        return AbilityEffect(
            spec.id, actor, f"Buffer active for {spec.duration_rounds} rounds",
            {"factor": factor, "rounds": float(spec.duration_rounds)},
        )

    def _heat_exchange(
        self, spec: AbilitySpec, actor: Actor, state: ReactionState, goal: Goal
    ) -> AbilityEffect:
        # Endothermic reactions move forward on heating, exothermic on cooling.
        endothermic = 1 if state.definition.delta_h > 0 else -1
        delta = spec.magnitude * goal.sign * endothermic
        state.adjust_temperature(delta)
        verb = "raised" if delta > 0 else "lowered"
        return AbilityEffect(
            spec.id, actor, f"Temperature {verb} by {abs(delta):.0f} K", {"temperature": delta}
        )

    def _quantum(self, spec: AbilitySpec, actor: Actor, state: ReactionState) -> AbilityEffect:
        changes: dict[str, float] = {}
        temperature_delta = float(self.rng.uniform(-QUANTUM_TEMPERATURE_SPAN, QUANTUM_TEMPERATURE_SPAN))
        state.adjust_temperature(temperature_delta)
        changes["temperature"] = temperature_delta

        species_list = state.definition.species
        if species_list:
            species = species_list[int(self.rng.integers(len(species_list)))]
            concentration_delta = float(
                self.rng.uniform(-QUANTUM_CONCENTRATION_SPAN, QUANTUM_CONCENTRATION_SPAN)
            )
            state.adjust_concentration(species, concentration_delta)
            changes[species] = concentration_delta

        if state.definition.is_gas_phase:
            pressure_delta = float(self.rng.uniform(-QUANTUM_PRESSURE_SPAN, QUANTUM_PRESSURE_SPAN))
            state.adjust_pressure(pressure_delta)
            changes["pressure"] = pressure_delta

        summary = ", ".join(f"{key} {value:+.2f}" for key, value in changes.items())
        return AbilityEffect(spec.id, actor, f"Quantum jump: {summary}", changes)
