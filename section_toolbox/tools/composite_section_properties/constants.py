from __future__ import annotations

DEFAULT_UNITS_SYSTEM = "US"

# Numeric guards
EPSILON = 1e-9
# Modular ratio is clamped to [MODULAR_RATIO_MIN, MODULAR_RATIO_MAX]
MODULAR_RATIO_MIN = EPSILON
MODULAR_RATIO_MAX = 1.0 / EPSILON

# Cracked neutral-axis bisection: fixed budget, not adaptive
BISECTION_MAX_ITER = 120
BISECTION_TOLERANCE = 1e-8

# Ec = 57,000 sqrt(f'c [psi]) psi  ->  57 sqrt(1000 f'c [ksi]) ksi
EC_COEFFICIENT = 57.0

# Long-term (creep) transformation uses k*n
LONG_TERM_RATIO_FACTOR = 3.0

# Reference fiber keys shared by summaries and reports
FIBER_TOP_OF_SLAB = "topOfSlab"
FIBER_TOP_OF_STEEL = "topOfSteel"
FIBER_BOTTOM_OF_STEEL = "bottomOfSteel"
