"""Interventions an actor can request, as a closed set of tagged variants.

Each variant knows its action identity (the key the action economy tracks
cooldowns under), whether a reaction supports it, and how to apply itself to
a :class:`ReactionState`. Dispatch happens once, through
:func:`parse_intervention`; callers never switch on action names.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping

from ccbalance.config import MatchSettings
from ccbalance.economy import RejectReason
from ccbalance.models import ReactionDefinition
from ccbalance.state import ReactionState

SPECIES_PREFIX = "addSpecies"
ABILITY_PREFIX = "ability"

# Used when a species has no positive round-start concentration.
FALLBACK_CONCENTRATION_STEP = 0.5


@dataclass(frozen=True)
class InterventionSteps:
    """Size of one step of each intervention."""

    concentration_fraction: float = 0.05
    temperature: float = 20.0
    pressure: float = 50.0

    @classmethod
    def from_settings(cls, settings: MatchSettings) -> InterventionSteps:
        return cls(
            concentration_fraction=settings.concentration_fraction,
            temperature=settings.temperature_step,
            pressure=settings.pressure_step,
        )


class Intervention(ABC):
    """Base class of every requestable action."""

    kind: ClassVar[str]
    physical: ClassVar[bool] = True

    @property
    @abstractmethod
    def identity(self) -> str:
        """Action identity used as the cooldown key."""

    def unsupported_reason(self, definition: ReactionDefinition) -> RejectReason | None:
        return None

    @abstractmethod
    def apply(self, state: ReactionState, steps: InterventionSteps, scale: float = 1.0) -> None:
        """Mutate ``state``; ``scale`` is the dampening multiplier."""


@dataclass(frozen=True)
class AddSpecies(Intervention):
    species: str
    kind: ClassVar[str] = SPECIES_PREFIX

    @property
    def identity(self) -> str:
        return f"{SPECIES_PREFIX}:{self.species}"

    def unsupported_reason(self, definition: ReactionDefinition) -> RejectReason | None:
        if not self.species:
            return RejectReason.UNKNOWN_ACTION
        if self.species not in definition.species:
            return RejectReason.UNKNOWN_SPECIES
        return None

    def amount(self, state: ReactionState, steps: InterventionSteps) -> float:
        delta = max(0.0, state.base_concentration(self.species) * steps.concentration_fraction)
        return delta or FALLBACK_CONCENTRATION_STEP

    def apply(self, state: ReactionState, steps: InterventionSteps, scale: float = 1.0) -> None:
        state.add_species(self.species, self.amount(state, steps) * scale)


@dataclass(frozen=True)
class Heat(Intervention):
    kind: ClassVar[str] = "heat"

    @property
    def identity(self) -> str:
        return self.kind

    def apply(self, state: ReactionState, steps: InterventionSteps, scale: float = 1.0) -> None:
        state.adjust_temperature(steps.temperature * scale)


@dataclass(frozen=True)
class Cool(Intervention):
    kind: ClassVar[str] = "cool"

    @property
    def identity(self) -> str:
        return self.kind

    def apply(self, state: ReactionState, steps: InterventionSteps, scale: float = 1.0) -> None:
        state.adjust_temperature(-steps.temperature * scale)


class _PressureChange(Intervention):
    direction: ClassVar[int]

    @property
    def identity(self) -> str:
        return self.kind

    def unsupported_reason(self, definition: ReactionDefinition) -> RejectReason | None:
        if not definition.is_gas_phase:
            return RejectReason.UNSUPPORTED
        return None

    def apply(self, state: ReactionState, steps: InterventionSteps, scale: float = 1.0) -> None:
        state.adjust_pressure(self.direction * steps.pressure * scale)


@dataclass(frozen=True)
class Pressurize(_PressureChange):
    kind: ClassVar[str] = "pressurize"
    direction: ClassVar[int] = 1


@dataclass(frozen=True)
class Depressurize(_PressureChange):
    kind: ClassVar[str] = "depressurize"
    direction: ClassVar[int] = -1


@dataclass(frozen=True)
class UseAbility(Intervention):
    """Ability use; resolved by the ability layer, not applied directly."""

    ability_id: str
    kind: ClassVar[str] = ABILITY_PREFIX
    physical: ClassVar[bool] = False

    @property
    def identity(self) -> str:
        return f"{ABILITY_PREFIX}:{self.ability_id}"

    def apply(self, state: ReactionState, steps: InterventionSteps, scale: float = 1.0) -> None:
        raise TypeError("Abilities are applied through AbilityLayer.use")


_SIMPLE = {cls.kind: cls for cls in (Heat, Cool, Pressurize, Depressurize)}


def parse_intervention(
    identity: str | Intervention, payload: Mapping[str, Any] | None = None
) -> Intervention | None:
    """Resolve an identity string (plus optional payload) to a variant.

    Accepted forms: ``"heat"``, ``"cool"``, ``"pressurize"``,
    ``"depressurize"``, ``"addSpecies:<species>"``, ``"ability:<id>"``, or
    the bare prefixes with the target in ``payload`` (``{"species": ...}`` /
    ``{"ability_id": ...}``). Returns None for anything else.
    """
    if isinstance(identity, Intervention):
        return identity
    if not isinstance(identity, str):
        return None
    payload = payload or {}
    name, _, target = identity.partition(":")
    if name in _SIMPLE and not target:
        return _SIMPLE[name]()
    if name == SPECIES_PREFIX:
        species = target or payload.get("species")
        return AddSpecies(str(species)) if species else None
    if name == ABILITY_PREFIX:
        ability_id = target or payload.get("ability_id") or payload.get("abilityId")
        return UseAbility(str(ability_id)) if ability_id else None
    return None
