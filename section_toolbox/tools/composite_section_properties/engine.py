"""
Composite girder section properties engine.

Entry points used by the tool and by any presentation layer:
- get_default_input() -> dict
- get_rebar_options() -> list[str]
- compute_section_props(inputs) -> SectionPropsResult

Everything here is a pure function of its inputs.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, Iterable, List, Mapping, Union

from loguru import logger
from pydantic import BaseModel

from .analysis.components import BarLayer, build_bar_layers
from .analysis.cracked import CrackedSectionResult, compute_cracked_negative
from .analysis.summary import SectionSummary
from .analysis.transformed import CompositeSection, compute_composite_uncracked, steel_only_summary
from .constants import EC_COEFFICIENT, EPSILON, LONG_TERM_RATIO_FACTOR, MODULAR_RATIO_MAX, MODULAR_RATIO_MIN
from .db.rebar_table import rebar_options
from .models import CompositeSectionInputs, MaterialInputs, RegionInputs

BASE_ASSUMPTIONS = (
    "Concrete effective width should be selected per governing code provisions for the specific loading scenario.",
    "Clear distance is interpreted from concrete face to bar outside edge, then converted to centroid using bar radius.",
)
EC_AUTO_NOTE = "Ec computed from f'c using Ec = 57,000*sqrt(f'c [psi])."
EC_MANUAL_NOTE = "Ec set manually by user."
CRACKED_METHOD_NOTE = "Cracked negative NA solved by binary search on transformed force equilibrium."


class OrderedUniqueList:
    """Insertion-ordered collection that ignores repeats."""

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: Dict[str, None] = {}
        for item in items:
            self.add(item)

    def add(self, item: str) -> None:
        self._items.setdefault(item, None)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> List[str]:
        return list(self._items)


@dataclass(frozen=True)
class MaterialProperties:
    Es: float
    fc: float
    Ec: float
    n: float
    n3: float
    Ec_method: str


@dataclass(frozen=True)
class RegionResult:
    key: str
    label: str
    region: RegionInputs
    bars: Dict[str, BarLayer]
    steel_only: SectionSummary
    composite_n: CompositeSection
    composite_3n: CompositeSection
    cracked_negative: CrackedSectionResult


@dataclass(frozen=True)
class SectionPropsResult:
    materials: MaterialProperties
    assumptions: List[str] = field(default_factory=list)
    regions: List[RegionResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view: finite floats or None, never NaN/inf."""
        return to_jsonable(self)


def to_jsonable(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return to_jsonable(obj.model_dump())
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, bool) or obj is None or isinstance(obj, (str, int)):
        return obj
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    return str(obj)


def derive_materials(materials: MaterialInputs) -> MaterialProperties:
    if materials.auto_Ec:
        Ec = EC_COEFFICIENT * math.sqrt(float(materials.fc_ksi) * 1000.0)
        method = "auto"
    else:
        Ec = float(materials.Ec_manual_ksi)
        method = "manual"

    n = float(materials.Es_ksi) / max(Ec, EPSILON)
    if not math.isfinite(n) or not MODULAR_RATIO_MIN <= n <= MODULAR_RATIO_MAX:
        clamped = MODULAR_RATIO_MAX if (math.isnan(n) or n > MODULAR_RATIO_MAX) else MODULAR_RATIO_MIN
        logger.warning(f"Modular ratio n={n!r} outside [{MODULAR_RATIO_MIN:g}, {MODULAR_RATIO_MAX:g}]; using {clamped:g}")
        n = clamped
    return MaterialProperties(
        Es=float(materials.Es_ksi),
        fc=float(materials.fc_ksi),
        Ec=float(Ec),
        n=float(n),
        n3=float(n * LONG_TERM_RATIO_FACTOR),
        Ec_method=method,
    )


def validate_region(region: RegionInputs) -> bool:
    """All geometric dimensions present and strictly positive."""
    for value in region.geometry_values().values():
        if value is None:
            return False
        v = float(value)
        if not math.isfinite(v) or v <= 0.0:
            return False
    return True


def _regions_to_run(inputs: CompositeSectionInputs) -> List[Dict[str, Any]]:
    if inputs.positive_same_as_negative:
        return [{"key": "both", "label": "Both regions", "data": inputs.negative}]
    return [
        {"key": "negative", "label": "Negative region", "data": inputs.negative},
        {"key": "positive", "label": "Positive region", "data": inputs.positive},
    ]


def _mirror_flanges(region: RegionInputs) -> RegionInputs:
    return region.model_copy(update={"tf_bot_in": region.tf_top_in, "bf_bot_in": region.bf_top_in})


def compute_region(key: str, label: str, region: RegionInputs, mat: MaterialProperties) -> RegionResult:
    """All four section cases for one validated region."""
    bars = build_bar_layers(region)
    return RegionResult(
        key=key,
        label=label,
        region=region,
        bars=bars,
        steel_only=steel_only_summary(region),
        composite_n=compute_composite_uncracked(region, mat.n, bars, "n"),
        composite_3n=compute_composite_uncracked(region, mat.n3, bars, "3n"),
        cracked_negative=compute_cracked_negative(region, mat.n, bars),
    )


def compute_section_props(inputs: Union[CompositeSectionInputs, Mapping[str, Any]]) -> SectionPropsResult:
    """Run every requested region; region input errors are collected, not raised.

    Raises pydantic.ValidationError only when `inputs` itself is malformed.
    """
    if not isinstance(inputs, CompositeSectionInputs):
        inputs = CompositeSectionInputs.model_validate(dict(inputs))

    mat = derive_materials(inputs.materials)

    assumptions = OrderedUniqueList(BASE_ASSUMPTIONS)
    assumptions.add(EC_AUTO_NOTE if mat.Ec_method == "auto" else EC_MANUAL_NOTE)
    assumptions.add(CRACKED_METHOD_NOTE)

    regions: List[RegionResult] = []
    errors: List[str] = []

    for cfg in _regions_to_run(inputs):
        region: RegionInputs = cfg["data"]
        if inputs.top_equals_bottom_flange:
            region = _mirror_flanges(region)

        if not validate_region(region):
            msg = f"Invalid inputs in {cfg['label']}. All geometric values must be positive."
            logger.warning(msg)
            errors.append(msg)
            continue

        result = compute_region(cfg["key"], cfg["label"], region, mat)

        for layer in (result.bars["top"], result.bars["bottom"]):
            if layer.assumption:
                assumptions.add(layer.assumption)

        if result.cracked_negative.approximated:
            assumptions.add(
                f"{cfg['label']}: cracked NA could not be bracketed; reported NA is the centroid of steel, "
                "reinforcement and full-depth transformed concrete (approximate)."
            )

        logger.debug(
            f"{cfg['label']}: y_bar steel={result.steel_only.y_bar:.4f} in, "
            f"n={result.composite_n.y_bar:.4f} in, 3n={result.composite_3n.y_bar:.4f} in, "
            f"cracked NA={result.cracked_negative.neutral_axis:.4f} in"
        )
        regions.append(result)

    return SectionPropsResult(
        materials=mat,
        assumptions=assumptions.to_list(),
        regions=regions,
        errors=errors,
    )


def get_default_input() -> Dict[str, Any]:
    """Fully populated example input (W24-like girder, 7 in haunch + slab)."""
    return CompositeSectionInputs().model_dump()


def get_rebar_options() -> List[str]:
    return rebar_options()


__all__ = [
    "MaterialProperties",
    "OrderedUniqueList",
    "RegionResult",
    "SectionPropsResult",
    "compute_region",
    "compute_section_props",
    "derive_materials",
    "get_default_input",
    "get_rebar_options",
    "to_jsonable",
    "validate_region",
]
