"""Built-in reaction catalog and JSON catalog loader."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from ccbalance.config import ConfigError
from ccbalance.models import ReactionDefinition

logger = logging.getLogger(__name__)

# K0 is given at the initial temperature of each reaction.
_BUILTIN: tuple[Mapping[str, Any], ...] = (
    {
        "id": "neutralization",
        "name": "Acid-base neutralization",
        "category": "ionic",
        "equation": "H+ + OH- = H2O",
        "reactants": ["H+", "OH-"],
        "products": ["H2O"],
        "coefficients": {"H+": 1, "OH-": 1, "H2O": 1},
        "initial_concentrations": {"H+": 1.0, "OH-": 1.0, "H2O": 1.0},
        "equilibrium_constant": 1e14,
        "delta_h": -57.3,
        "initial_temperature": 298.0,
    },
    {
        "id": "silver-chloride",
        "name": "Silver chloride precipitation",
        "category": "ionic",
        "equation": "Ag+ + Cl- = AgCl",
        "reactants": ["Ag+", "Cl-"],
        "products": ["AgCl"],
        "coefficients": {"Ag+": 1, "Cl-": 1, "AgCl": 1},
        "initial_concentrations": {"Ag+": 0.5, "Cl-": 0.5, "AgCl": 0.01},
        "equilibrium_constant": 1e10,
        "delta_h": -65.0,
        "initial_temperature": 298.0,
    },
    {
        "id": "carbonate-acid",
        "name": "Carbonate with acid",
        "category": "ionic",
        "equation": "CO32- + 2H+ = H2O + CO2",
        "reactants": ["CO32-", "H+"],
        "products": ["H2O", "CO2"],
        "coefficients": {"CO32-": 1, "H+": 2, "H2O": 1, "CO2": 1},
        "initial_concentrations": {"CO32-": 0.5, "H+": 0.8, "H2O": 1.0, "CO2": 0.1},
        "equilibrium_constant": 1e16,
        "delta_h": -30.0,
        "initial_temperature": 298.0,
        "has_gas": True,
        "gas_species": ["CO2"],
    },
    {
        "id": "acetic-acid",
        "name": "Acetic acid ionization",
        "category": "ionization",
        "equation": "CH3COOH = CH3COO- + H+",
        "reactants": ["CH3COOH"],
        "products": ["CH3COO-", "H+"],
        "coefficients": {"CH3COOH": 1, "CH3COO-": 1, "H+": 1},
        "initial_concentrations": {"CH3COOH": 0.1, "CH3COO-": 0.001, "H+": 0.001},
        "equilibrium_constant": 1.8e-5,
        "delta_h": -0.4,
        "initial_temperature": 298.0,
    },
    {
        "id": "haber",
        "name": "Ammonia synthesis",
        "category": "gas",
        "equation": "N2 + 3H2 = 2NH3",
        "reactants": ["N2", "H2"],
        "products": ["NH3"],
        "coefficients": {"N2": 1, "H2": 3, "NH3": 2},
        "initial_concentrations": {"N2": 1.0, "H2": 3.0, "NH3": 0.1},
        "equilibrium_constant": 0.5,
        "delta_h": -92.0,
        "initial_temperature": 723.0,
        "initial_pressure": 200.0,
        "has_gas": True,
        "gas_species": ["N2", "H2", "NH3"],
    },
    {
        "id": "contact",
        "name": "Sulfur trioxide synthesis",
        "category": "gas",
        "equation": "2SO2 + O2 = 2SO3",
        "reactants": ["SO2", "O2"],
        "products": ["SO3"],
        "coefficients": {"SO2": 2, "O2": 1, "SO3": 2},
        "initial_concentrations": {"SO2": 0.5, "O2": 0.5, "SO3": 0.1},
        "equilibrium_constant": 5e5,
        "delta_h": -198.0,
        "initial_temperature": 673.0,
        "has_gas": True,
        "gas_species": ["SO2", "O2", "SO3"],
    },
    {
        "id": "pcl5",
        "name": "Phosphorus pentachloride decomposition",
        "category": "gas",
        "equation": "PCl5 = PCl3 + Cl2",
        "reactants": ["PCl5"],
        "products": ["PCl3", "Cl2"],
        "coefficients": {"PCl5": 1, "PCl3": 1, "Cl2": 1},
        "initial_concentrations": {"PCl5": 0.5, "PCl3": 0.1, "Cl2": 0.1},
        "equilibrium_constant": 0.04,
        "delta_h": 93.0,
        "initial_temperature": 523.0,
        "has_gas": True,
        "gas_species": ["PCl5", "PCl3", "Cl2"],
    },
    {
        "id": "no2-dimer",
        "name": "Nitrogen dioxide dimerization",
        "category": "gas",
        "equation": "2NO2 = N2O4",
        "reactants": ["NO2"],
        "products": ["N2O4"],
        "coefficients": {"NO2": 2, "N2O4": 1},
        "initial_concentrations": {"NO2": 0.5, "N2O4": 0.1},
        "equilibrium_constant": 6.8,
        "delta_h": -57.0,
        "initial_temperature": 298.0,
        "has_gas": True,
        "gas_species": ["NO2", "N2O4"],
    },
    {
        "id": "hydrogen-iodide",
        "name": "Hydrogen iodide synthesis",
        "category": "gas",
        "equation": "H2 + I2 = 2HI",
        "reactants": ["H2", "I2"],
        "products": ["HI"],
        "coefficients": {"H2": 1, "I2": 1, "HI": 2},
        "initial_concentrations": {"H2": 0.5, "I2": 0.5, "HI": 0.1},
        "equilibrium_constant": 50.0,
        "delta_h": -10.0,
        "initial_temperature": 698.0,
        "has_gas": True,
        "gas_species": ["H2", "I2", "HI"],
    },
    {
        "id": "steam-reforming",
        "name": "Methane steam reforming",
        "category": "gas",
        "equation": "CH4 + H2O = CO + 3H2",
        "reactants": ["CH4", "H2O"],
        "products": ["CO", "H2"],
        "coefficients": {"CH4": 1, "H2O": 1, "CO": 1, "H2": 3},
        "initial_concentrations": {"CH4": 0.5, "H2O": 0.5, "CO": 0.1, "H2": 0.3},
        "equilibrium_constant": 2e-4,
        "delta_h": 206.0,
        "initial_temperature": 1073.0,
        "initial_pressure": 200.0,
        "has_gas": True,
        "gas_species": ["CH4", "H2O", "CO", "H2"],
    },
)

BUILTIN_REACTIONS: dict[str, ReactionDefinition] = {
    record["id"]: ReactionDefinition.from_mapping(record) for record in _BUILTIN
}


def list_reactions(category: str | None = None) -> list[ReactionDefinition]:
    return [r for r in BUILTIN_REACTIONS.values() if category is None or r.category == category]


def get_reaction(reaction_id: str, extra: Mapping[str, ReactionDefinition] | None = None) -> ReactionDefinition:
    """Look a reaction up in ``extra`` first, then in the built-in catalog."""
    if extra and reaction_id in extra:
        return extra[reaction_id]
    try:
        return BUILTIN_REACTIONS[reaction_id]
    except KeyError:
        raise KeyError(f"Unknown reaction: {reaction_id}") from None


def _records(data: Any) -> Iterable[Mapping[str, Any]]:
    if isinstance(data, Mapping):
        data = data.get("reactions", [data])
    if not isinstance(data, list):
        raise ConfigError("A reaction file must hold an object, a list, or {'reactions': [...]}")
    for record in data:
        if not isinstance(record, Mapping):
            raise ConfigError(f"Reaction records must be objects, got {type(record).__name__}")
        yield record


def load_reactions(path: str | Path) -> dict[str, ReactionDefinition]:
    """Read reaction definitions from a JSON file, keyed by id.

    Records use the keys of :meth:`ReactionDefinition.from_mapping`; bad
    values are normalized with a warning, structural errors raise
    :class:`ConfigError`.
    """
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read reactions from {path}: {exc}") from exc

    reactions: dict[str, ReactionDefinition] = {}
    for record in _records(data):
        try:
            definition = ReactionDefinition.from_mapping(record)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid reaction record in {path}: {exc}") from exc
        if not definition.reactants or not definition.products:
            raise ConfigError(f"Reaction {definition.id} in {path} needs reactants and products")
        if definition.id in reactions:
            logger.warning("Duplicate reaction id %s in %s, keeping the last one", definition.id, path)
        reactions[definition.id] = definition
    logger.debug("Loaded %d reactions from %s", len(reactions), path)
    return reactions
