"""Data structures for actors, goals and reaction definitions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ccbalance.constants import REFERENCE_TEMPERATURE, STANDARD_PRESSURE

logger = logging.getLogger(__name__)


class Actor(str, Enum):
    HUMAN = "human"
    OPPONENT = "opponent"

    @property
    def other(self) -> Actor:
        return Actor.OPPONENT if self is Actor.HUMAN else Actor.HUMAN


class Goal(str, Enum):
    """Direction an actor wants the equilibrium to move in."""

    FORWARD = "forward"
    REVERSE = "reverse"

    @property
    def opposite(self) -> Goal:
        return Goal.REVERSE if self is Goal.FORWARD else Goal.FORWARD

    @property
    def sign(self) -> int:
        return 1 if self is Goal.FORWARD else -1


def _as_finite(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _is_positive(value: Any) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


@dataclass(frozen=True)
class ReactionDefinition:
    """Immutable description of one reversible reaction.

    The definition is normalized on construction instead of rejected, so a
    malformed catalog entry still yields a playable reaction:

    - a species listed as both reactant and product is kept as a reactant;
    - coefficients for unknown species are dropped, and missing or
      non-positive coefficients default to 1;
    - a non-positive or non-finite ``equilibrium_constant`` defaults to 1;
    - non-numeric ``delta_h`` defaults to 0 and an invalid ``max_rounds`` to None;
    - gas species are restricted to species of the reaction.
    """

    reactants: tuple[str, ...]
    products: tuple[str, ...]
    coefficients: Mapping[str, int] = field(default_factory=dict)
    initial_concentrations: Mapping[str, float] = field(default_factory=dict)
    equilibrium_constant: float = 1.0
    delta_h: float = 0.0
    temperature_sensitivity: float = 1.0
    reference_temperature: float | None = None
    initial_temperature: float = REFERENCE_TEMPERATURE
    initial_pressure: float = STANDARD_PRESSURE
    has_gas: bool = False
    gas_species: tuple[str, ...] = ()
    id: str = "custom"
    name: str = ""
    equation: str = ""
    category: str = ""
    max_rounds: int | None = None

    def __post_init__(self) -> None:
        reactants = tuple(dict.fromkeys(str(s) for s in self.reactants))
        products = []
        for species in dict.fromkeys(str(s) for s in self.products):
            if species in reactants:
                logger.warning(
                    "Reaction %s: %s listed as reactant and product, keeping it as reactant",
                    self.id,
                    species,
                )
                continue
            products.append(species)
        products = tuple(products)
        known = reactants + products

        coefficients: dict[str, int] = {}
        for species in known:
            raw = self.coefficients.get(species)
            if raw is not None and _is_positive(raw):
                coefficients[species] = max(1, int(round(float(raw))))
            else:
                if raw is not None:
                    logger.warning(
                        "Reaction %s: invalid coefficient %r for %s, using 1",
                        self.id,
                        raw,
                        species,
                    )
                coefficients[species] = 1
        for species in self.coefficients:
            if species not in known:
                logger.warning(
                    "Reaction %s: coefficient for unknown species %s dropped",
                    self.id,
                    species,
                )

        concentrations = {}
        for species, value in self.initial_concentrations.items():
            concentrations[str(species)] = float(value) if _is_positive(value) else 1.0
        for species in known:
            concentrations.setdefault(species, 1.0)

        k0 = self.equilibrium_constant
        if not _is_positive(k0):
            logger.warning("Reaction %s: invalid K0 %r, using 1", self.id, k0)
            k0 = 1.0

        sensitivity = self.temperature_sensitivity
        try:
            sensitivity = float(sensitivity)
        except (TypeError, ValueError):
            sensitivity = 1.0
        if not math.isfinite(sensitivity):
            sensitivity = 1.0

        initial_temperature = (
            float(self.initial_temperature)
            if _is_positive(self.initial_temperature)
            else REFERENCE_TEMPERATURE
        )
        reference_temperature = (
            float(self.reference_temperature)
            if _is_positive(self.reference_temperature)
            else initial_temperature
        )
        initial_pressure = (
            float(self.initial_pressure)
            if _is_positive(self.initial_pressure)
            else STANDARD_PRESSURE
        )

        delta_h = _as_finite(self.delta_h if self.delta_h is not None else 0.0)
        if delta_h is None:
            logger.warning("Reaction %s: invalid deltaH %r, using 0", self.id, self.delta_h)
            delta_h = 0.0

        max_rounds = self.max_rounds
        if max_rounds is not None:
            rounds = _as_finite(max_rounds)
            if rounds is None or rounds < 1:
                logger.warning("Reaction %s: invalid maxRounds %r, ignoring it", self.id, max_rounds)
                max_rounds = None
            else:
                max_rounds = int(rounds)

        gas_species = tuple(s for s in dict.fromkeys(self.gas_species) if s in known)

        object.__setattr__(self, "reactants", reactants)
        object.__setattr__(self, "products", products)
        object.__setattr__(self, "coefficients", coefficients)
        object.__setattr__(self, "initial_concentrations", concentrations)
        object.__setattr__(self, "equilibrium_constant", float(k0))
        object.__setattr__(self, "delta_h", delta_h)
        object.__setattr__(self, "temperature_sensitivity", sensitivity)
        object.__setattr__(self, "reference_temperature", reference_temperature)
        object.__setattr__(self, "initial_temperature", initial_temperature)
        object.__setattr__(self, "initial_pressure", initial_pressure)
        object.__setattr__(self, "has_gas", bool(self.has_gas))
        object.__setattr__(self, "gas_species", gas_species)
        object.__setattr__(self, "max_rounds", max_rounds)

    @property
    def species(self) -> tuple[str, ...]:
        return self.reactants + self.products

    @property
    def is_gas_phase(self) -> bool:
        return self.has_gas and len(self.gas_species) > 0

    def coefficient(self, species: str) -> int:
        return self.coefficients.get(species, 1)

    def favored_species(self, goal: Goal) -> tuple[str, ...]:
        """Species whose addition pushes the equilibrium towards ``goal``."""
        return self.reactants if goal is Goal.FORWARD else self.products

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ReactionDefinition:
        """Build a definition from a catalog record.

        Accepts both snake_case keys and the camelCase keys of level files
        (``equilibriumConstant``, ``deltaH``, ``initialTemp``...).
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        max_rounds = pick("max_rounds", "maxRounds")
        return cls(
            reactants=tuple(pick("reactants", default=())),
            products=tuple(pick("products", default=())),
            coefficients=dict(pick("coefficients", default={})),
            initial_concentrations=dict(
                pick("initial_concentrations", "initialConcentrations", default={})
            ),
            equilibrium_constant=pick("equilibrium_constant", "equilibriumConstant", "K0", default=1.0),
            delta_h=pick("delta_h", "deltaH", default=0.0),
            temperature_sensitivity=pick(
                "temperature_sensitivity", "temperatureSensitivity", default=1.0
            ),
            reference_temperature=pick("reference_temperature", "referenceTemp"),
            initial_temperature=pick(
                "initial_temperature", "initialTemperature", "initialTemp",
                default=REFERENCE_TEMPERATURE,
            ),
            initial_pressure=pick("initial_pressure", "initialPressure", default=STANDARD_PRESSURE),
            has_gas=bool(pick("has_gas", "hasGas", default=False)),
            gas_species=tuple(pick("gas_species", "gasSpecies", default=())),
            id=str(pick("id", default="custom")),
            name=str(pick("name", default="")),
            equation=str(pick("equation", default="")),
            category=str(pick("category", default="")),
            max_rounds=max_rounds,
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "equation": self.equation,
            "category": self.category,
            "reactants": list(self.reactants),
            "products": list(self.products),
            "coefficients": dict(self.coefficients),
            "initial_concentrations": dict(self.initial_concentrations),
            "equilibrium_constant": self.equilibrium_constant,
            "delta_h": self.delta_h,
            "temperature_sensitivity": self.temperature_sensitivity,
            "reference_temperature": self.reference_temperature,
            "initial_temperature": self.initial_temperature,
            "initial_pressure": self.initial_pressure,
            "has_gas": self.has_gas,
            "gas_species": list(self.gas_species),
            "max_rounds": self.max_rounds,
        }
