"""Mutable reaction state for one round."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping

from ccbalance import equilibrium
from ccbalance.constants import (
    CONCENTRATION_EPSILON,
    CONCENTRATION_MAX,
    PRESSURE_RANGE,
    TEMPERATURE_RANGE,
)
from ccbalance.models import ReactionDefinition


def clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


def _clamp_concentration(value: float) -> float:
    if not math.isfinite(value):
        return CONCENTRATION_MAX if value > 0 else CONCENTRATION_EPSILON
    return clamp(value, CONCENTRATION_EPSILON, CONCENTRATION_MAX)


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only view of a reaction state handed to the presentation layer."""

    k: float
    q: float
    shift: float
    temperature: float
    pressure: float
    concentrations: Mapping[str, float]

    def to_dict(self) -> dict[str, object]:
        return {
            "K": self.k,
            "Q": self.q,
            "shift": self.shift,
            "temperature": self.temperature,
            "pressure": self.pressure,
            "concentrations": dict(self.concentrations),
        }


@dataclass
class ReactionState:
    """Temperature, pressure and concentrations of the active round.

    Derived values ``k``, ``q`` and ``shift`` are recomputed after every
    mutation, so they are always consistent with the physical state.
    ``base_concentrations`` keeps the round-start values; the size of an
    "add species" step is a fraction of them.
    """

    definition: ReactionDefinition
    temperature: float
    pressure: float
    concentrations: dict[str, float]
    base_concentrations: dict[str, float] = field(default_factory=dict)
    k: float = 1.0
    q: float = 1.0
    shift: float = 0.0

    def __post_init__(self) -> None:
        self.temperature = clamp(float(self.temperature), *TEMPERATURE_RANGE)
        self.pressure = clamp(float(self.pressure), *PRESSURE_RANGE)
        self.concentrations = {
            species: _clamp_concentration(float(value))
            for species, value in self.concentrations.items()
        }
        if not self.base_concentrations:
            self.base_concentrations = dict(self.concentrations)
        self.recompute()

    @classmethod
    def at_equilibrium(
        cls,
        definition: ReactionDefinition,
        temperature: float | None = None,
        pressure: float | None = None,
    ) -> ReactionState:
        """Fresh round state whose concentrations satisfy Q = K."""
        if temperature is None:
            temperature = definition.initial_temperature
        if pressure is None:
            pressure = definition.initial_pressure
        temperature = clamp(float(temperature), *TEMPERATURE_RANGE)
        concentrations = equilibrium.balanced_concentrations(definition, temperature)
        return cls(
            definition=definition,
            temperature=temperature,
            pressure=pressure,
            concentrations=concentrations,
            base_concentrations=dict(concentrations),
        )

    def copy(self) -> ReactionState:
        return ReactionState(
            definition=self.definition,
            temperature=self.temperature,
            pressure=self.pressure,
            concentrations=dict(self.concentrations),
            base_concentrations=dict(self.base_concentrations),
        )

    def recompute(self) -> None:
        self.k = equilibrium.equilibrium_constant(self.definition, self.temperature)
        self.q = equilibrium.reaction_quotient(self.definition, self.concentrations)
        self.shift = equilibrium.shift(self.k, self.q)

    def add_species(self, species: str, amount: float) -> None:
        current = self.concentrations.get(species, 0.0)
        self.concentrations[species] = _clamp_concentration(current + amount)
        self.recompute()

    def adjust_concentration(self, species: str, delta: float) -> None:
        """Like :meth:`add_species` but allows removal, floored at the epsilon."""
        self.add_species(species, delta)

    def adjust_temperature(self, delta: float) -> None:
        self.set_temperature(self.temperature + delta)

    def set_temperature(self, value: float) -> None:
        self.temperature = clamp(float(value), *TEMPERATURE_RANGE)
        self.recompute()

    def adjust_pressure(self, delta: float) -> None:
        self.set_pressure(self.pressure + delta)

    def set_pressure(self, value: float) -> None:
        """Change pressure; gas species follow the new/old pressure ratio."""
        if not self.definition.is_gas_phase:
            return
        old_pressure = self.pressure
        self.pressure = clamp(float(value), *PRESSURE_RANGE)
        scaled = equilibrium.rescale_for_pressure(
            self.definition, self.concentrations, old_pressure, self.pressure
        )
        self.concentrations = {s: _clamp_concentration(v) for s, v in scaled.items()}
        self.recompute()

    def relax(self, fraction: float) -> None:
        """Move the state ``fraction`` of the way back to equilibrium."""
        relaxed = equilibrium.relax(
            self.definition, self.concentrations, self.temperature, fraction
        )
        self.concentrations = {s: _clamp_concentration(v) for s, v in relaxed.items()}
        self.recompute()

    def base_concentration(self, species: str) -> float:
        base = self.base_concentrations.get(species)
        if base is None:
            base = self.definition.initial_concentrations.get(species, 1.0)
        return base

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            k=self.k,
            q=self.q,
            shift=self.shift,
            temperature=self.temperature,
            pressure=self.pressure,
            concentrations=dict(self.concentrations),
        )
