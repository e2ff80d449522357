from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..db.rebar_table import get_rebar
from ..models import RebarMatInputs, RegionInputs

ALTERNATING_BARS_NOTE = "Alternating bars transformed with As/in = 0.5 * (A1/s1 + A2/s2)."
MAT_OMITTED_NOTE = "Mat omitted due to incomplete inputs."


@dataclass(frozen=True)
class GeometricComponent:
    """One rectangle (or line element) of a transformed section.

    y is the centroid elevation measured from the bottom of steel; i_local is the
    moment of inertia about the component's own centroid.
    """

    name: str
    area: float
    y: float
    i_local: float = 0.0


@dataclass(frozen=True)
class BarLayer:
    area_per_inch: float
    y_centroid: float
    detail: str
    assumption: Optional[str] = None
    bar_size: str = ""
    diameter_in: float = 0.0


def rectangle_ixx(width: float, height: float) -> float:
    return width * height**3 / 12.0


def concrete_limits(region: RegionInputs) -> Tuple[float, float]:
    """(bottom, top) elevations of the haunch + slab concrete block."""
    bottom = float(region.D_in)
    top = bottom + float(region.t_haunch_in) + float(region.t_slab_in)
    return bottom, top


def build_steel_components(region: RegionInputs) -> List[GeometricComponent]:
    """Bottom flange, web and top flange rectangles.

    The web height is clamped at zero so overlapping flange inputs never produce
    a negative web depth.
    """
    D = float(region.D_in)
    tw = float(region.tw_in)
    tf_top = float(region.tf_top_in)
    bf_top = float(region.bf_top_in)
    tf_bot = float(region.tf_bot_in)
    bf_bot = float(region.bf_bot_in)

    web_height = max(D - tf_top - tf_bot, 0.0)

    return [
        GeometricComponent(
            name="Bottom flange",
            area=bf_bot * tf_bot,
            y=tf_bot / 2.0,
            i_local=rectangle_ixx(bf_bot, tf_bot),
        ),
        GeometricComponent(
            name="Web",
            area=tw * web_height,
            y=tf_bot + web_height / 2.0,
            i_local=rectangle_ixx(tw, web_height),
        ),
        GeometricComponent(
            name="Top flange",
            area=bf_top * tf_top,
            y=D - tf_top / 2.0,
            i_local=rectangle_ixx(bf_top, tf_top),
        ),
    ]


def _positive(x: Optional[float]) -> bool:
    return x is not None and float(x) > 0.0


def compute_bar_layer(
    mat: RebarMatInputs,
    concrete_bottom_y: float,
    concrete_top_y: float,
    is_top_mat: bool,
) -> BarLayer:
    """Smear one reinforcement mat into an area per inch of deck width.

    Incomplete input (unknown bar, spacing <= 0, negative clear distance) gives a
    zero-area layer at the concrete bottom instead of an error.
    """
    primary = get_rebar(mat.bar_size)
    clear = mat.clear_distance_in

    if primary is None or not _positive(mat.spacing_in) or clear is None or float(clear) < 0.0:
        return BarLayer(
            area_per_inch=0.0,
            y_centroid=float(concrete_bottom_y),
            detail=MAT_OMITTED_NOTE,
            assumption=None,
            bar_size=mat.bar_size or "",
            diameter_in=0.0,
        )

    spacing = float(mat.spacing_in)
    clear = float(clear)
    area_per_inch = primary.area_in2 / spacing
    diameter = primary.diameter_in
    assumption = None
    detail = f"{primary.designation} @ {spacing:g} in"

    if mat.alternating_bars:
        secondary = get_rebar(mat.alt_bar_size)
        if secondary is not None and _positive(mat.alt_spacing_in):
            alt_spacing = float(mat.alt_spacing_in)
            area_per_inch = 0.5 * (primary.area_in2 / spacing + secondary.area_in2 / alt_spacing)
            diameter = 0.5 * (primary.diameter_in + secondary.diameter_in)
            assumption = ALTERNATING_BARS_NOTE
            detail = f"{detail} alternating {secondary.designation} @ {alt_spacing:g} in"

    radius = diameter / 2.0
    if is_top_mat:
        y_centroid = float(concrete_top_y) - (clear + radius)
    else:
        y_centroid = float(concrete_bottom_y) + clear + radius

    return BarLayer(
        area_per_inch=float(area_per_inch),
        y_centroid=float(y_centroid),
        detail=detail,
        assumption=assumption,
        bar_size=primary.designation,
        diameter_in=float(diameter),
    )


def build_bar_layers(region: RegionInputs) -> Dict[str, BarLayer]:
    bottom, top = concrete_limits(region)
    return {
        "top": compute_bar_layer(region.rebar_top, bottom, top, is_top_mat=True),
        "bottom": compute_bar_layer(region.rebar_bottom, bottom, top, is_top_mat=False),
    }


def build_rebar_components(bars: Dict[str, BarLayer], b_eff: float) -> List[GeometricComponent]:
    # bars are line elements: no self inertia
    return [
        GeometricComponent(
            name="Top reinforcement",
            area=bars["top"].area_per_inch * float(b_eff),
            y=bars["top"].y_centroid,
            i_local=0.0,
        ),
        GeometricComponent(
            name="Bottom reinforcement",
            area=bars["bottom"].area_per_inch * float(b_eff),
            y=bars["bottom"].y_centroid,
            i_local=0.0,
        ),
    ]
