from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..constants import (
    BISECTION_MAX_ITER,
    BISECTION_TOLERANCE,
    EPSILON,
    FIBER_BOTTOM_OF_STEEL,
    FIBER_TOP_OF_STEEL,
)
from ..models import RegionInputs
from .components import (
    BarLayer,
    GeometricComponent,
    build_rebar_components,
    build_steel_components,
    concrete_limits,
    rectangle_ixx,
)
from .summary import ExpandedRow, build_expanded_rows, safe_divide

CRACKED_CONCRETE_NAME = "Concrete in compression (cracked)"


@dataclass(frozen=True)
class NeutralAxisSolution:
    neutral_axis: float
    approximated: bool
    iterations: int
    residual: float


@dataclass(frozen=True)
class CrackedSectionResult:
    """Cracked negative-moment section about the solved neutral axis.

    approximated is True when the force balance could not be bracketed and the
    neutral axis is the single-step centroid estimate rather than a root.
    """

    neutral_axis: float
    compression_depth: float
    components: List[GeometricComponent]
    i_cracked: float
    section_modulus: Dict[str, Optional[float]]
    approximated: bool = False
    iterations: int = 0
    rows: List[ExpandedRow] = field(default_factory=list)


def force_balance(
    na: float,
    components: Sequence[GeometricComponent],
    b_eff: float,
    modular_ratio: float,
    concrete_bottom: float,
    concrete_top: float,
) -> float:
    """Net first moment of area about `na`.

    Steel and bars always participate. Concrete participates only between
    max(na, concrete_bottom) and concrete_top, transformed by n; concrete below
    the axis is cracked.
    """
    steel_moment = sum(c.area * (c.y - na) for c in components)

    if na >= concrete_top:
        return steel_moment

    compression_bottom = max(na, concrete_bottom)
    compression_depth = concrete_top - compression_bottom
    if compression_depth <= 0.0:
        return steel_moment

    area = b_eff * compression_depth / modular_ratio
    centroid = 0.5 * (compression_bottom + concrete_top)
    return steel_moment + area * (centroid - na)


def _fallback_neutral_axis(
    components: Sequence[GeometricComponent],
    b_eff: float,
    modular_ratio: float,
    concrete_bottom: float,
    concrete_top: float,
) -> float:
    # full-depth concrete block lumped with steel and bars; centroid of the lot
    trial = list(components) + [
        GeometricComponent(
            name="Concrete (full depth)",
            area=b_eff * (concrete_top - concrete_bottom) / modular_ratio,
            y=0.5 * (concrete_top + concrete_bottom),
        )
    ]
    total_area = sum(c.area for c in trial)
    return sum(c.area * c.y for c in trial) / max(total_area, EPSILON)


def solve_cracked_neutral_axis(
    region: RegionInputs,
    modular_ratio: float,
    steel_components: Sequence[GeometricComponent],
    rebar_components: Sequence[GeometricComponent],
) -> NeutralAxisSolution:
    """Bisection on the cracked force balance between y = 0 and the top of concrete.

    If the balance has the same sign at both bounds no root is bracketed; the
    centroid of steel + bars + full-depth transformed concrete is returned instead
    and flagged as approximated.
    """
    b_eff = float(region.b_eff_in)
    concrete_bottom, concrete_top = concrete_limits(region)
    components = list(steel_components) + list(rebar_components)

    def f(na: float) -> float:
        return force_balance(na, components, b_eff, modular_ratio, concrete_bottom, concrete_top)

    low = 0.0
    high = concrete_top
    low_value = f(low)
    high_value = f(high)

    if low_value == 0.0:
        return NeutralAxisSolution(neutral_axis=low, approximated=False, iterations=0, residual=0.0)
    if high_value == 0.0:
        return NeutralAxisSolution(neutral_axis=high, approximated=False, iterations=0, residual=0.0)

    if low_value * high_value > 0.0:
        na = _fallback_neutral_axis(components, b_eff, modular_ratio, concrete_bottom, concrete_top)
        logger.debug(
            f"Cracked NA not bracketed (F(0)={low_value:.6g}, F(top)={high_value:.6g}); "
            f"centroid estimate y={na:.6g} in"
        )
        return NeutralAxisSolution(neutral_axis=na, approximated=True, iterations=0, residual=f(na))

    iterations = 0
    for iterations in range(1, BISECTION_MAX_ITER + 1):
        mid = 0.5 * (low + high)
        mid_value = f(mid)

        if abs(mid_value) < BISECTION_TOLERANCE:
            logger.debug(f"Cracked NA converged at y={mid:.9g} in after {iterations} iterations")
            return NeutralAxisSolution(neutral_axis=mid, approximated=False, iterations=iterations, residual=mid_value)

        if low_value * mid_value <= 0.0:
            high = mid
        else:
            low = mid
            low_value = mid_value

    na = 0.5 * (low + high)
    logger.debug(f"Cracked NA bisection budget exhausted; y={na:.9g} in")
    return NeutralAxisSolution(neutral_axis=na, approximated=False, iterations=iterations, residual=f(na))


def compute_cracked_negative(
    region: RegionInputs,
    modular_ratio: float,
    bars: Dict[str, BarLayer],
) -> CrackedSectionResult:
    """Cracked section properties for negative moment (always short-term n)."""
    b_eff = float(region.b_eff_in)
    D = float(region.D_in)
    steel = build_steel_components(region)
    rebar = build_rebar_components(bars, b_eff)

    solution = solve_cracked_neutral_axis(region, modular_ratio, steel, rebar)
    na = solution.neutral_axis

    concrete_bottom, concrete_top = concrete_limits(region)
    compression_bottom = max(na, concrete_bottom)
    compression_depth = max(concrete_top - compression_bottom, 0.0)

    components = steel + rebar
    if compression_depth > EPSILON:
        components.append(
            GeometricComponent(
                name=CRACKED_CONCRETE_NAME,
                area=b_eff * compression_depth / modular_ratio,
                y=0.5 * (compression_bottom + concrete_top),
                i_local=rectangle_ixx(b_eff, compression_depth) / modular_ratio,
            )
        )

    i_cracked = sum(c.i_local + c.area * (c.y - na) ** 2 for c in components)

    return CrackedSectionResult(
        neutral_axis=float(na),
        compression_depth=float(compression_depth),
        components=components,
        i_cracked=float(i_cracked),
        section_modulus={
            FIBER_TOP_OF_STEEL: safe_divide(i_cracked, abs(D - na)),
            FIBER_BOTTOM_OF_STEEL: safe_divide(i_cracked, abs(na)),
        },
        approximated=solution.approximated,
        iterations=solution.iterations,
        rows=build_expanded_rows(components, na),
    )
