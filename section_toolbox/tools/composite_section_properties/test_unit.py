from __future__ import annotations

import json
import math

import pytest
from pydantic import ValidationError

from .analysis.components import (
    ALTERNATING_BARS_NOTE,
    MAT_OMITTED_NOTE,
    GeometricComponent,
    build_steel_components,
    compute_bar_layer,
    concrete_limits,
)
from .analysis.cracked import force_balance, solve_cracked_neutral_axis
from .analysis.summary import expanded_totals, summarize_section
from .calc_trace import CalcVar, field_catalog, substitute
from .db.rebar_table import get_rebar, rebar_options
from .engine import OrderedUniqueList, compute_section_props, derive_materials, get_default_input, get_rebar_options
from .models import CompositeSectionInputs, MaterialInputs, RebarMatInputs, RegionInputs


def _inputs(**overrides) -> dict:
    d = get_default_input()
    d.update(overrides)
    return d


def _bare_region(**geom) -> dict:
    """Default geometry with both mats switched off."""
    r = RegionInputs(**geom).model_dump()
    r["rebar_top"]["spacing_in"] = None
    r["rebar_bottom"]["spacing_in"] = None
    return r


def _walk_numbers(obj):
    if isinstance(obj, dict):
        for v in obj.values():
            yield from _walk_numbers(v)
    elif isinstance(obj, list):
        for v in obj:
            yield from _walk_numbers(v)
    elif isinstance(obj, float):
        yield obj


def test_rebar_table_lookup() -> None:
    b = get_rebar("#5")
    assert b is not None
    assert b.area_in2 == 0.31
    assert b.diameter_in == 0.625
    assert get_rebar("5") == b
    assert get_rebar(" #5 ") == b
    assert get_rebar("#14") is None
    assert get_rebar(None) is None


def test_rebar_options_ordered() -> None:
    opts = get_rebar_options()
    assert opts == rebar_options()
    assert opts[0] == "#3"
    assert opts[-1] == "#11"
    assert len(opts) == 9


def test_steel_components_geometry() -> None:
    region = RegionInputs()
    bot, web, top = build_steel_components(region)
    assert bot.name == "Bottom flange"
    assert math.isclose(bot.area, 8.0 * 0.71)
    assert math.isclose(bot.y, 0.355)
    assert math.isclose(web.area, 0.44 * (24.0 - 1.42))
    assert math.isclose(web.y, 0.71 + (24.0 - 1.42) / 2.0)
    assert math.isclose(top.y, 24.0 - 0.355)
    assert math.isclose(top.i_local, 8.0 * 0.71**3 / 12.0)


def test_web_height_clamped_for_overlapping_flanges() -> None:
    region = RegionInputs(D_in=1.0, tf_top_in=0.8, tf_bot_in=0.8)
    _, web, _ = build_steel_components(region)
    assert web.area == 0.0
    assert web.i_local == 0.0


def test_single_bar_layer() -> None:
    mat = RebarMatInputs(bar_size="#5", spacing_in=12.0, clear_distance_in=2.0)
    top = compute_bar_layer(mat, 24.0, 31.0, is_top_mat=True)
    assert math.isclose(top.area_per_inch, 0.31 / 12.0)
    assert math.isclose(top.y_centroid, 31.0 - (2.0 + 0.3125))
    assert top.assumption is None

    bottom = compute_bar_layer(mat, 24.0, 31.0, is_top_mat=False)
    assert math.isclose(bottom.y_centroid, 24.0 + 2.0 + 0.3125)


def test_alternating_bar_layer() -> None:
    mat = RebarMatInputs(
        bar_size="#5", spacing_in=12.0, clear_distance_in=2.0, alternating_bars=True, alt_bar_size="#6", alt_spacing_in=12.0
    )
    layer = compute_bar_layer(mat, 24.0, 31.0, is_top_mat=True)
    assert math.isclose(layer.area_per_inch, 0.03125)
    assert math.isclose(layer.diameter_in, 0.6875)
    assert math.isclose(layer.y_centroid, 31.0 - (2.0 + 0.34375))
    assert layer.assumption == ALTERNATING_BARS_NOTE


def test_alternating_ignored_without_valid_secondary() -> None:
    mat = RebarMatInputs(bar_size="#5", spacing_in=12.0, alternating_bars=True, alt_bar_size="#6", alt_spacing_in=0.0)
    layer = compute_bar_layer(mat, 24.0, 31.0, is_top_mat=True)
    assert math.isclose(layer.area_per_inch, 0.31 / 12.0)
    assert layer.assumption is None


@pytest.mark.parametrize(
    "mat",
    [
        RebarMatInputs(bar_size="#14"),
        RebarMatInputs(spacing_in=0.0),
        RebarMatInputs(spacing_in=None),
        RebarMatInputs(clear_distance_in=-0.5),
    ],
)
def test_incomplete_mat_contributes_nothing(mat: RebarMatInputs) -> None:
    layer = compute_bar_layer(mat, 24.0, 31.0, is_top_mat=True)
    assert layer.area_per_inch == 0.0
    assert layer.y_centroid == 24.0
    assert layer.detail == MAT_OMITTED_NOTE


def test_summarize_section_guards() -> None:
    s = summarize_section([], {"top": 1.0})
    assert s.total_area == 0.0
    assert s.i == 0.0
    # centroid coincides with the fiber -> no finite modulus
    s2 = summarize_section([GeometricComponent("block", 2.0, 5.0, 1.0)], {"mid": 5.0, "top": 6.0})
    assert s2.section_modulus["mid"] is None
    assert math.isclose(s2.section_modulus["top"], 1.0)


def test_expanded_rows_total_matches_inertia() -> None:
    res = compute_section_props(get_default_input())
    cn = res.regions[0].composite_n
    totals = expanded_totals(cn.rows)
    assert math.isclose(totals["i"], cn.i, rel_tol=1e-12)
    assert math.isclose(totals["area"], cn.total_area, rel_tol=1e-12)


def test_default_scenario() -> None:
    res = compute_section_props(get_default_input())
    assert res.ok
    assert math.isclose(res.materials.Ec, 57.0 * math.sqrt(4000.0))
    assert math.isclose(res.materials.Ec, 3605.0, abs_tol=0.5)
    assert math.isclose(res.materials.n, 29000.0 / res.materials.Ec)
    assert math.isclose(res.materials.n3, 3.0 * res.materials.n)
    assert [r.key for r in res.regions] == ["negative", "positive"]

    r = res.regions[0]
    assert math.isclose(r.steel_only.y_bar, 12.0, abs_tol=1e-9)
    assert r.composite_n.y_bar > r.steel_only.y_bar
    assert r.composite_n.i > r.steel_only.i
    assert "topOfSlab" not in r.steel_only.section_modulus
    assert set(r.composite_n.section_modulus) == {"topOfSlab", "topOfSteel", "bottomOfSteel"}


def test_composite_area_exceeds_steel_area() -> None:
    res = compute_section_props(get_default_input())
    for r in res.regions:
        assert r.composite_n.total_area > r.steel_only.total_area
        assert r.composite_3n.total_area > r.steel_only.total_area


def test_composite_n_matches_hand_calculation() -> None:
    geom = dict(D_in=30.0, tw_in=0.5, tf_top_in=1.0, bf_top_in=12.0, tf_bot_in=1.0, bf_bot_in=12.0,
                t_haunch_in=2.0, t_slab_in=8.0, b_eff_in=96.0)
    d = _inputs(negative=_bare_region(**geom), positive_same_as_negative=True)
    d["materials"] = {"Es_ksi": 29000.0, "fc_ksi": 4.0, "auto_Ec": False, "Ec_manual_ksi": 3625.0}
    res = compute_section_props(d)
    n = 29000.0 / 3625.0  # 8.0

    # (area, y, Io)
    parts = [
        (12.0, 0.5, 12.0 / 12.0),
        (0.5 * 28.0, 15.0, 0.5 * 28.0**3 / 12.0),
        (12.0, 29.5, 12.0 / 12.0),
        (96.0 * 10.0 / n, 35.0, 96.0 * 10.0**3 / 12.0 / n),
    ]
    A = sum(p[0] for p in parts)
    y_bar = sum(p[0] * p[1] for p in parts) / A
    I = sum(p[2] + p[0] * (p[1] - y_bar) ** 2 for p in parts)

    cn = res.regions[0].composite_n
    assert math.isclose(cn.total_area, A, rel_tol=1e-12)
    assert math.isclose(cn.y_bar, y_bar, rel_tol=1e-12)
    assert math.isclose(cn.i, I, rel_tol=1e-12)
    assert math.isclose(cn.section_modulus["topOfSteel"], I / abs(30.0 - y_bar), rel_tol=1e-12)
    assert math.isclose(cn.section_modulus["bottomOfSteel"], I / y_bar, rel_tol=1e-12)
    assert math.isclose(cn.section_modulus["topOfSlab"], I / (40.0 - y_bar), rel_tol=1e-12)


def test_cracked_neutral_axis_is_a_root() -> None:
    res = compute_section_props(get_default_input())
    for r in res.regions:
        cr = r.cracked_negative
        bottom, top = concrete_limits(r.region)
        assert 0.0 <= cr.neutral_axis <= top
        assert cr.approximated is False
        steel_and_bars = [c for c in cr.components if not c.name.startswith("Concrete")]
        F = force_balance(cr.neutral_axis, steel_and_bars, r.region.b_eff_in, res.materials.n, bottom, top)
        assert abs(F) < 1e-6
        assert cr.i_cracked > 0.0
        assert cr.compression_depth >= 0.0


def test_cracked_uses_short_term_ratio() -> None:
    res = compute_section_props(get_default_input())
    cr = res.regions[0].cracked_negative
    block = [c for c in cr.components if c.name == "Concrete in compression (cracked)"]
    assert len(block) == 1
    assert cr.compression_depth > 0.0
    assert math.isclose(block[0].area, 120.0 * cr.compression_depth / res.materials.n)


def test_cracked_fallback_is_flagged() -> None:
    region = RegionInputs()
    n = 8.0
    lifted = [GeometricComponent("Lifted plate", 10.0, 100.0)]
    sol = solve_cracked_neutral_axis(region, n, lifted, [])
    conc_area = 120.0 * 7.0 / n
    expected = (10.0 * 100.0 + conc_area * 27.5) / (10.0 + conc_area)
    assert sol.approximated is True
    assert sol.iterations == 0
    assert math.isclose(sol.neutral_axis, expected)


def test_alternating_assumption_listed_once() -> None:
    alt = {"bar_size": "#5", "spacing_in": 12.0, "clear_distance_in": 2.0,
           "alternating_bars": True, "alt_bar_size": "#6", "alt_spacing_in": 12.0}
    d = get_default_input()
    for key in ("negative", "positive"):
        d[key]["rebar_top"] = dict(alt)
        d[key]["rebar_bottom"] = dict(alt, clear_distance_in=1.0)
    res = compute_section_props(d)
    assert math.isclose(res.regions[0].bars["top"].area_per_inch, 0.03125)
    hits = [a for a in res.assumptions if "0.5 * (A1/s1 + A2/s2)" in a]
    assert len(hits) == 1


def test_invalid_region_is_isolated() -> None:
    d = get_default_input()
    d["negative"]["D_in"] = 0.0
    res = compute_section_props(d)
    assert not res.ok
    assert [r.key for r in res.regions] == ["positive"]
    assert len(res.errors) == 1
    assert "Negative region" in res.errors[0]


def test_missing_dimension_is_invalid() -> None:
    d = get_default_input()
    d["positive"]["b_eff_in"] = None
    res = compute_section_props(d)
    assert [r.key for r in res.regions] == ["negative"]
    assert res.errors == ["Invalid inputs in Positive region. All geometric values must be positive."]


def test_same_geometry_runs_once() -> None:
    res = compute_section_props(_inputs(positive_same_as_negative=True))
    assert [(r.key, r.label) for r in res.regions] == [("both", "Both regions")]


def test_mirror_bottom_flange() -> None:
    d = get_default_input()
    d["top_equals_bottom_flange"] = True
    d["negative"]["tf_bot_in"] = 0.0  # overwritten by the top flange before validation
    d["negative"]["bf_top_in"] = 10.0
    res = compute_section_props(d)
    assert res.ok
    r = res.regions[0].region
    assert r.tf_bot_in == r.tf_top_in
    assert r.bf_bot_in == 10.0


def test_manual_ec() -> None:
    d = get_default_input()
    d["materials"] = {"Es_ksi": 29000.0, "fc_ksi": 4.0, "auto_Ec": False, "Ec_manual_ksi": 3000.0}
    res = compute_section_props(d)
    assert math.isclose(res.materials.n, 29000.0 / 3000.0)
    assert res.materials.Ec_method == "manual"
    assert "Ec set manually by user." in res.assumptions


def test_manual_ec_required() -> None:
    with pytest.raises(ValidationError):
        CompositeSectionInputs.model_validate(
            {"materials": {"Es_ksi": 29000.0, "fc_ksi": 4.0, "auto_Ec": False}}
        )


def test_idempotent() -> None:
    a = compute_section_props(get_default_input())
    b = compute_section_props(get_default_input())
    assert a == b
    assert json.dumps(a.to_dict(), sort_keys=True) == json.dumps(b.to_dict(), sort_keys=True)


def test_input_not_mutated() -> None:
    d = get_default_input()
    d["top_equals_bottom_flange"] = True
    d["negative"]["bf_bot_in"] = 6.0
    compute_section_props(d)
    assert d["negative"]["bf_bot_in"] == 6.0


def test_thin_concrete_stays_finite() -> None:
    d = get_default_input()
    d["negative"]["t_haunch_in"] = 1e-7
    d["negative"]["t_slab_in"] = 1e-7
    res = compute_section_props(d)
    assert res.ok
    out = res.to_dict()
    json.dumps(out, allow_nan=False)
    assert all(math.isfinite(x) for x in _walk_numbers(out))
    cr = res.regions[0].cracked_negative
    assert 0.0 <= cr.neutral_axis <= 24.0 + 2e-7


def test_ordered_unique_list() -> None:
    u = OrderedUniqueList(["b", "a", "b"])
    u.add("c")
    u.add("a")
    assert u.to_list() == ["b", "a", "c"]
    assert "c" in u
    assert len(u) == 3


def test_substitution_replaces_whole_symbols_only() -> None:
    eq = r"\frac{b_{eff}\,c}{n}\left(\bar{y}_c - y_{NA}\right)"
    out = substitute(
        eq,
        [
            CalcVar(symbol="b_{eff}", description="", value=120.0, units="in", source=""),
            CalcVar(symbol="c", description="", value=6.5, units="in", source=""),
        ],
    )
    assert out.startswith(r"\frac{120\,\mathrm{in}\,6.5\,\mathrm{in}}")
    assert r"\bar{y}_c" in out


def test_field_catalog_reads_model_units() -> None:
    cat = field_catalog(CompositeSectionInputs)
    assert cat["negative.rebar_top.spacing_in"][1] == "in"
    assert cat["materials.fc_ksi"] == ("Concrete compressive strength f'c", "ksi")
    assert cat["positive_same_as_negative"][1] == "-"


@pytest.mark.parametrize("field", ["Es_ksi", "fc_ksi"])
@pytest.mark.parametrize("bad", [float("inf"), float("nan")])
def test_non_finite_material_rejected(field: str, bad: float) -> None:
    d = get_default_input()
    d["materials"][field] = bad
    with pytest.raises(ValidationError):
        compute_section_props(d)


def test_non_finite_manual_ec_rejected() -> None:
    d = get_default_input()
    d["materials"].update({"auto_Ec": False, "Ec_manual_ksi": float("inf")})
    with pytest.raises(ValidationError):
        CompositeSectionInputs.model_validate(d)


def test_modular_ratio_stays_positive_finite() -> None:
    # f'c * 1000 overflows, so Ec is inf and Es / Ec would be 0
    mat = derive_materials(MaterialInputs(fc_ksi=1e308))
    assert math.isfinite(mat.n) and mat.n > 0.0
    assert math.isfinite(mat.n3) and mat.n3 > 0.0

    d = get_default_input()
    d["materials"]["fc_ksi"] = 1e308
    res = compute_section_props(d)
    assert res.ok
    assert len(res.regions) == 2


def test_missing_bar_size_omits_mat() -> None:
    d = get_default_input()
    d["negative"]["rebar_top"]["bar_size"] = None
    d["positive"]["rebar_bottom"]["alt_bar_size"] = None
    res = compute_section_props(d)
    assert res.ok
    assert [r.key for r in res.regions] == ["negative", "positive"]

    top = res.regions[0].bars["top"]
    assert top.area_per_inch == 0.0
    assert top.detail == MAT_OMITTED_NOTE
    assert res.regions[0].bars["bottom"].area_per_inch > 0.0
    assert res.regions[1].bars["bottom"].area_per_inch > 0.0

    layer = compute_bar_layer(RebarMatInputs(bar_size=None), 24.0, 31.0, is_top_mat=True)
    assert layer.area_per_inch == 0.0
    assert layer.detail == MAT_OMITTED_NOTE
