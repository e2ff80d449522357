from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class RebarProperties:
    """Nominal ASTM A615 deformed bar properties (in, in^2)."""

    designation: str
    area_in2: float
    diameter_in: float

    @property
    def radius_in(self) -> float:
        return self.diameter_in / 2.0


# ASTM A615 / ACI 318 Appendix A nominal bar table (inch-pound sizes).
_REBAR: Dict[str, Dict[str, float]] = {
    "#3": {"A": 0.11, "d": 0.375},
    "#4": {"A": 0.20, "d": 0.5},
    "#5": {"A": 0.31, "d": 0.625},
    "#6": {"A": 0.44, "d": 0.75},
    "#7": {"A": 0.60, "d": 0.875},
    "#8": {"A": 0.79, "d": 1.0},
    "#9": {"A": 1.00, "d": 1.128},
    "#10": {"A": 1.27, "d": 1.27},
    "#11": {"A": 1.56, "d": 1.41},
}


def _normalize_designation(designation: str) -> str:
    key = str(designation).strip().replace(" ", "")
    if key and not key.startswith("#"):
        key = f"#{key}"
    return key


def get_rebar(designation: Optional[str]) -> Optional[RebarProperties]:
    """Return bar properties, or None for unknown/blank designations.

    Accepts "#5", "5" and " #5 ". An unknown size is not an error here;
    callers degrade the mat to zero area.
    """
    if designation is None:
        return None
    key = _normalize_designation(designation)
    row = _REBAR.get(key)
    if row is None:
        return None
    return RebarProperties(designation=key, area_in2=float(row["A"]), diameter_in=float(row["d"]))


def rebar_options() -> List[str]:
    """Ordered bar designations for selection inputs."""
    return list(_REBAR.keys())
