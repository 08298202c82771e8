"""Equilibrium constant, reaction quotient and shift.

Every function here is pure: it maps a :class:`ReactionDefinition` plus a
physical state (temperature, pressure, concentrations) to derived values
without touching any game state.

All quotients are evaluated in log space. Equilibrium constants in the
catalog span roughly 1e-40 to 1e40 and coefficients go up to 3, so the raw
products of powers overflow double precision well before the clamps below
would apply.

Equations:
    Reaction quotient:
        Q = prod([P_j]^nu_j) / prod([R_i]^nu_i)

    van't Hoff:
        ln(K / K0) = -(dH * 1000 / R) * (1/T - 1/T0) * sensitivity

    Shift:
        shift = -tanh(ln(Q / K))      (positive => net forward)
"""

from __future__ import annotations

import math
from typing import Iterable, Mapping

import numpy as np
from scipy.optimize import brentq

from ccbalance.constants import (
    CONCENTRATION_EPSILON,
    CONCENTRATION_MAX,
    MAX_K,
    MAX_LN_RATIO,
    MIN_K,
    R_GAS,
)
from ccbalance.models import ReactionDefinition

# tanh saturates to exactly 1.0 in double precision for |x| > ~19.
SHIFT_LIMIT = math.nextafter(1.0, 0.0)

# |ln(Q/K)| below this is rounding noise from the log-space evaluation.
BALANCE_TOLERANCE = 1e-9

_LN_MIN_K = math.log(MIN_K)
_LN_MAX_K = math.log(MAX_K)


def _side_log(
    definition: ReactionDefinition,
    species: Iterable[str],
    concentrations: Mapping[str, float],
) -> float:
    species = tuple(species)
    if not species:
        return 0.0
    values = np.array([concentrations.get(name, 0.0) for name in species], dtype=float)
    values = np.nan_to_num(values, nan=0.0, posinf=CONCENTRATION_MAX, neginf=0.0)
    values = np.maximum(values, CONCENTRATION_EPSILON)
    coefficients = np.array([definition.coefficient(name) for name in species], dtype=float)
    return float(np.dot(coefficients, np.log(values)))


def log_reaction_quotient(
    definition: ReactionDefinition, concentrations: Mapping[str, float]
) -> float:
    """Natural log of Q, unclamped."""
    return _side_log(definition, definition.products, concentrations) - _side_log(
        definition, definition.reactants, concentrations
    )


def reaction_quotient(
    definition: ReactionDefinition, concentrations: Mapping[str, float]
) -> float:
    """Reaction quotient Q; always finite and positive.

    Missing or non-positive concentrations are floored to
    ``CONCENTRATION_EPSILON`` before exponentiation.
    """
    ln_q = float(np.clip(log_reaction_quotient(definition, concentrations), -MAX_LN_RATIO, MAX_LN_RATIO))
    return float(np.exp(ln_q))


def log_equilibrium_constant(definition: ReactionDefinition, temperature: float) -> float:
    temperature = max(float(temperature), 1e-9) if math.isfinite(temperature) else definition.reference_temperature
    t0 = definition.reference_temperature
    ln_ratio = (
        -(definition.delta_h * 1000.0) / R_GAS * (1.0 / temperature - 1.0 / t0)
    ) * definition.temperature_sensitivity
    ln_ratio = float(np.clip(ln_ratio, -MAX_LN_RATIO, MAX_LN_RATIO))
    ln_k = math.log(definition.equilibrium_constant) + ln_ratio
    return float(np.clip(ln_k, _LN_MIN_K, _LN_MAX_K))


def equilibrium_constant(definition: ReactionDefinition, temperature: float) -> float:
    """Temperature-dependent K from the van't Hoff relation.

    The log ratio is clamped to +/-690 and K to [1e-300, 1e300] so that
    degenerate definitions (extreme dH, near-zero T) never produce NaN or
    infinity downstream.
    """
    k = float(np.exp(log_equilibrium_constant(definition, temperature)))
    if not math.isfinite(k) or k <= 0:
        k = MIN_K
    return min(MAX_K, max(MIN_K, k))


def shift(k: float, q: float) -> float:
    """Signed, bounded displacement from equilibrium in (-1, 1).

    Positive means Q < K and the system is driven toward products.
    """
    if k == 0 or q == 0:
        return 0.0
    if not (k > 0 and q > 0):
        return 0.0
    ln_ratio = math.log(q) - math.log(k)
    if abs(ln_ratio) < BALANCE_TOLERANCE:
        return 0.0
    value = -math.tanh(ln_ratio)
    if not math.isfinite(value):
        return 0.0
    return max(-SHIFT_LIMIT, min(SHIFT_LIMIT, value))


def balanced_concentrations(
    definition: ReactionDefinition, temperature: float | None = None
) -> dict[str, float]:
    """Round-start concentrations for which Q equals K at ``temperature``.

    All products are set to 10**a and all reactants to 10**-a with
    a = log10(K) / (P + R), P and R being the summed product and reactant
    coefficients, so both sides sit symmetrically around 1 mol/L.
    """
    if temperature is None:
        temperature = definition.initial_temperature
    reactant_power = sum(definition.coefficient(s) for s in definition.reactants)
    product_power = sum(definition.coefficient(s) for s in definition.products)
    if reactant_power <= 0 or product_power <= 0:
        return dict(definition.initial_concentrations)

    log_k = log_equilibrium_constant(definition, temperature) / math.log(10.0)
    exponent = log_k / (product_power + reactant_power)
    product_concentration = 10.0 ** exponent
    reactant_concentration = 10.0 ** -exponent

    concentrations: dict[str, float] = {}
    for species in definition.reactants:
        concentrations[species] = reactant_concentration
    for species in definition.products:
        concentrations[species] = product_concentration
    for species, value in definition.initial_concentrations.items():
        concentrations.setdefault(species, value)

    for species, value in concentrations.items():
        if not math.isfinite(value) or value <= 0:
            concentrations[species] = 1.0
    return concentrations


def rescale_for_pressure(
    definition: ReactionDefinition,
    concentrations: Mapping[str, float],
    old_pressure: float,
    new_pressure: float,
) -> dict[str, float]:
    """Scale gas species by new/old pressure (compression at fixed moles)."""
    scaled = dict(concentrations)
    if not definition.is_gas_phase or old_pressure <= 0:
        return scaled
    ratio = new_pressure / old_pressure
    for species in definition.gas_species:
        if species in scaled:
            scaled[species] *= ratio
    return scaled


def extent_bounds(
    definition: ReactionDefinition, concentrations: Mapping[str, float]
) -> tuple[float, float]:
    """Smallest and largest reaction extent keeping every species positive."""
    forward = min(
        (max(concentrations.get(s, 0.0), 0.0) / definition.coefficient(s) for s in definition.reactants),
        default=0.0,
    )
    backward = min(
        (max(concentrations.get(s, 0.0), 0.0) / definition.coefficient(s) for s in definition.products),
        default=0.0,
    )
    return -backward, forward


def apply_extent(
    definition: ReactionDefinition, concentrations: Mapping[str, float], extent: float
) -> dict[str, float]:
    """Advance the reaction by ``extent`` mol/L (negative runs it in reverse)."""
    updated = dict(concentrations)
    for species in definition.reactants:
        value = updated.get(species, 0.0) - definition.coefficient(species) * extent
        updated[species] = min(max(value, CONCENTRATION_EPSILON), CONCENTRATION_MAX)
    for species in definition.products:
        value = updated.get(species, 0.0) + definition.coefficient(species) * extent
        updated[species] = min(max(value, CONCENTRATION_EPSILON), CONCENTRATION_MAX)
    return updated


def equilibrium_extent(
    definition: ReactionDefinition,
    concentrations: Mapping[str, float],
    temperature: float,
) -> float:
    """Extent at which Q reaches K, found with Brent's method.

    ln Q(extent) - ln K is strictly increasing on the open interval returned
    by :func:`extent_bounds`. When the target lies beyond what the available
    material allows, the nearer bound is returned.
    """
    if not definition.reactants or not definition.products:
        return 0.0

    ln_k = log_equilibrium_constant(definition, temperature)

    def residual(extent: float) -> float:
        return log_reaction_quotient(definition, apply_extent(definition, concentrations, extent)) - ln_k

    if residual(0.0) == 0.0:
        return 0.0

    lower, upper = extent_bounds(definition, concentrations)
    # Stay strictly inside the interval so no species hits the floor.
    lower *= 1.0 - 1e-12
    upper *= 1.0 - 1e-12
    if upper <= lower:
        return 0.0

    f_lower = residual(lower)
    f_upper = residual(upper)
    if f_lower > 0:
        return lower
    if f_upper < 0:
        return upper
    tolerance = max((upper - lower) * 1e-12, 1e-300)
    return float(brentq(residual, lower, upper, xtol=tolerance))


def relax(
    definition: ReactionDefinition,
    concentrations: Mapping[str, float],
    temperature: float,
    fraction: float,
) -> dict[str, float]:
    """Move concentrations ``fraction`` of the way to equilibrium."""
    fraction = min(max(fraction, 0.0), 1.0)
    extent = equilibrium_extent(definition, concentrations, temperature)
    return apply_extent(definition, concentrations, extent * fraction)
