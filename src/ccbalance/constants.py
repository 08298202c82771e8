"""Physical constants and game-wide limits."""

from __future__ import annotations

R_GAS = 8.314  # J/(mol·K)

REFERENCE_TEMPERATURE = 298.0  # K
STANDARD_PRESSURE = 101.325  # kPa

CONCENTRATION_EPSILON = 1e-30
CONCENTRATION_MAX = 1e300

MIN_K = 1e-300
MAX_K = 1e300
MAX_LN_RATIO = 690.0  # exp(690) ~ 1e300

TEMPERATURE_RANGE = (200.0, 1500.0)  # K
PRESSURE_RANGE = (10.0, 500.0)  # kPa
