from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from ..constants import EPSILON
from .components import GeometricComponent


@dataclass(frozen=True)
class ExpandedRow:
    """One line of the A / Yb / AYb / Io / d / Io+Ad^2 breakdown table."""

    name: str
    area: float
    yb: float
    ayb: float
    io: float
    d: float
    io_plus_ad2: float


@dataclass(frozen=True)
class SectionSummary:
    total_area: float
    y_bar: float
    i: float
    section_modulus: Dict[str, Optional[float]]
    components: List[GeometricComponent] = field(default_factory=list)
    rows: List[ExpandedRow] = field(default_factory=list)


def safe_divide(numerator: float, denominator: float) -> Optional[float]:
    """numerator / denominator, or None when the denominator is effectively zero."""
    if abs(denominator) < EPSILON:
        return None
    return numerator / denominator


def build_expanded_rows(components: Sequence[GeometricComponent], reference_y: float) -> List[ExpandedRow]:
    rows: List[ExpandedRow] = []
    for c in components:
        d = c.y - reference_y
        rows.append(
            ExpandedRow(
                name=c.name,
                area=c.area,
                yb=c.y,
                ayb=c.area * c.y,
                io=c.i_local,
                d=d,
                io_plus_ad2=c.i_local + c.area * d**2,
            )
        )
    return rows


def expanded_totals(rows: Sequence[ExpandedRow]) -> Dict[str, float]:
    return {
        "area": sum(r.area for r in rows),
        "ayb": sum(r.ayb for r in rows),
        "i": sum(r.io_plus_ad2 for r in rows),
    }


def summarize_section(
    components: Sequence[GeometricComponent],
    reference_fibers: Mapping[str, float],
) -> SectionSummary:
    """Aggregate components into A, y_bar, I (parallel axis) and S at named fibers.

    y_bar uses max(A, EPSILON) as the denominator; for a zero-area section the
    returned y_bar carries no meaning. S is None at a fiber that coincides with y_bar.
    """
    total_area = sum(c.area for c in components)
    y_bar = sum(c.area * c.y for c in components) / max(total_area, EPSILON)
    i = sum(c.i_local + c.area * (c.y - y_bar) ** 2 for c in components)

    section_modulus: Dict[str, Optional[float]] = {}
    for key, fiber_y in reference_fibers.items():
        section_modulus[key] = safe_divide(i, abs(float(fiber_y) - y_bar))

    return SectionSummary(
        total_area=float(total_area),
        y_bar=float(y_bar),
        i=float(i),
        section_modulus=section_modulus,
        components=list(components),
        rows=build_expanded_rows(components, y_bar),
    )
