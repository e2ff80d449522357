from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..constants import FIBER_BOTTOM_OF_STEEL, FIBER_TOP_OF_SLAB, FIBER_TOP_OF_STEEL
from ..models import RegionInputs
from .components import (
    BarLayer,
    GeometricComponent,
    build_rebar_components,
    build_steel_components,
    concrete_limits,
    rectangle_ixx,
)
from .summary import ExpandedRow, SectionSummary, summarize_section


@dataclass(frozen=True)
class CompositeSection:
    """Uncracked transformed section for one modular-ratio divisor.

    Carries the same A / y_bar / I / S fields as SectionSummary plus the concrete
    block limits and the fiber distances used for the S values.
    """

    label: str
    divisor: float
    total_area: float
    y_bar: float
    i: float
    section_modulus: Dict[str, Optional[float]]
    concrete_top_y: float
    concrete_bottom_y: float
    fiber_distances: Dict[str, float] = field(default_factory=dict)
    components: List[GeometricComponent] = field(default_factory=list)
    rows: List[ExpandedRow] = field(default_factory=list)


def compute_composite_uncracked(
    region: RegionInputs,
    transformed_concrete_divisor: float,
    bars: Dict[str, BarLayer],
    label: str,
) -> CompositeSection:
    """Transformed-area method: concrete area and inertia divided by n (or 3n).

    Components: steel plates, one concrete block spanning haunch + slab over the
    effective width, and the two smeared reinforcement mats.
    """
    divisor = float(transformed_concrete_divisor)
    b_eff = float(region.b_eff_in)
    D = float(region.D_in)
    concrete_bottom, concrete_top = concrete_limits(region)
    concrete_depth = concrete_top - concrete_bottom

    concrete = GeometricComponent(
        name=f"Concrete ({label})",
        area=b_eff * concrete_depth / divisor,
        y=concrete_bottom + concrete_depth / 2.0,
        i_local=rectangle_ixx(b_eff, concrete_depth) / divisor,
    )

    components = build_steel_components(region) + [concrete] + build_rebar_components(bars, b_eff)

    summary = summarize_section(
        components,
        {
            FIBER_TOP_OF_SLAB: concrete_top,
            FIBER_TOP_OF_STEEL: D,
            FIBER_BOTTOM_OF_STEEL: 0.0,
        },
    )

    return CompositeSection(
        label=label,
        divisor=divisor,
        total_area=summary.total_area,
        y_bar=summary.y_bar,
        i=summary.i,
        section_modulus=summary.section_modulus,
        concrete_top_y=concrete_top,
        concrete_bottom_y=concrete_bottom,
        fiber_distances={
            "bottom": summary.y_bar,
            "topSlab": concrete_top - summary.y_bar,
            "topSteel": abs(summary.y_bar - D),
        },
        components=summary.components,
        rows=summary.rows,
    )


def steel_only_summary(region: RegionInputs) -> SectionSummary:
    """Non-composite girder; no slab fiber."""
    return summarize_section(
        build_steel_components(region),
        {
            FIBER_TOP_OF_STEEL: float(region.D_in),
            FIBER_BOTTOM_OF_STEEL: 0.0,
        },
    )
