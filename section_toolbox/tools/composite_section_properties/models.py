from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .db.rebar_table import rebar_options


class RebarMatInputs(BaseModel):
    """
    One longitudinal reinforcement mat in the deck, smeared over the effective width.

    Coordinates:
    - clear_distance_in is measured from the concrete face (top face for the top mat,
      bottom face of the haunch for the bottom mat) to the outside edge of the bar.
    - Alternating bars (A1 @ s1 alternating with A2 @ s2) are averaged.

    Numeric fields are not range-checked; an incomplete mat contributes zero area
    with a note.
    """

    model_config = ConfigDict(extra="forbid")

    bar_size: Optional[str] = Field("#5", description="Primary bar designation", json_schema_extra={"choices": rebar_options()})
    spacing_in: Optional[float] = Field(12.0, description="Primary bar spacing", json_schema_extra={"units": "in"})
    clear_distance_in: Optional[float] = Field(
        2.0, description="Clear distance from concrete face to bar edge", json_schema_extra={"units": "in"}
    )
    alternating_bars: bool = Field(False, description="Primary bars alternate with a second bar size")
    alt_bar_size: Optional[str] = Field("#6", description="Alternating bar designation", json_schema_extra={"choices": rebar_options()})
    alt_spacing_in: Optional[float] = Field(None, description="Alternating bar spacing", json_schema_extra={"units": "in"})

    @field_validator("bar_size", "alt_bar_size")
    @classmethod
    def _normalize_bar_size(cls, v: Optional[str]) -> Optional[str]:
        # None is kept: a mat without a bar size is omitted, not rejected
        if v is None:
            return None
        return str(v).strip().replace(" ", "")


def _bottom_mat() -> RebarMatInputs:
    return RebarMatInputs(clear_distance_in=1.0)


class RegionInputs(BaseModel):
    """
    Steel I-girder + haunch + deck geometry for one moment region.

    Elevations are measured from the bottom of steel (y = 0, +y up):
      0 .. D                      steel girder
      D .. D + t_haunch           haunch
      D + t_haunch .. + t_slab    slab

    Geometry is not range-checked here. A region with a non-positive dimension is
    rejected by the engine for that region only.
    """

    model_config = ConfigDict(extra="forbid")

    D_in: Optional[float] = Field(24.0, description="Steel girder depth D", json_schema_extra={"units": "in"})
    tw_in: Optional[float] = Field(0.44, description="Web thickness tw", json_schema_extra={"units": "in"})
    tf_top_in: Optional[float] = Field(0.71, description="Top flange thickness", json_schema_extra={"units": "in"})
    bf_top_in: Optional[float] = Field(8.0, description="Top flange width", json_schema_extra={"units": "in"})
    tf_bot_in: Optional[float] = Field(0.71, description="Bottom flange thickness", json_schema_extra={"units": "in"})
    bf_bot_in: Optional[float] = Field(8.0, description="Bottom flange width", json_schema_extra={"units": "in"})
    t_haunch_in: Optional[float] = Field(2.0, description="Haunch thickness", json_schema_extra={"units": "in"})
    t_slab_in: Optional[float] = Field(5.0, description="Slab thickness", json_schema_extra={"units": "in"})
    b_eff_in: Optional[float] = Field(120.0, description="Effective slab width", json_schema_extra={"units": "in"})

    rebar_top: RebarMatInputs = Field(default_factory=RebarMatInputs, description="Top reinforcement mat")
    rebar_bottom: RebarMatInputs = Field(default_factory=_bottom_mat, description="Bottom reinforcement mat")

    def geometry_values(self) -> dict:
        return {
            "D_in": self.D_in,
            "tw_in": self.tw_in,
            "tf_top_in": self.tf_top_in,
            "bf_top_in": self.bf_top_in,
            "tf_bot_in": self.tf_bot_in,
            "bf_bot_in": self.bf_bot_in,
            "t_haunch_in": self.t_haunch_in,
            "t_slab_in": self.t_slab_in,
            "b_eff_in": self.b_eff_in,
        }


class MaterialInputs(BaseModel):
    """Steel and concrete material properties (ksi)."""

    model_config = ConfigDict(extra="forbid")

    Es_ksi: float = Field(29000.0, gt=0.0, allow_inf_nan=False, description="Steel modulus Es", json_schema_extra={"units": "ksi"})
    fc_ksi: float = Field(4.0, gt=0.0, allow_inf_nan=False, description="Concrete compressive strength f'c", json_schema_extra={"units": "ksi"})
    auto_Ec: bool = Field(True, description="Compute Ec = 57,000 sqrt(f'c [psi]) instead of using Ec_manual_ksi")
    Ec_manual_ksi: Optional[float] = Field(
        None, gt=0.0, allow_inf_nan=False, description="Concrete modulus Ec (used when auto_Ec is False)", json_schema_extra={"units": "ksi"}
    )

    @model_validator(mode="after")
    def _cross_checks(self):
        if not self.auto_Ec and self.Ec_manual_ksi is None:
            raise ValueError("Ec_manual_ksi is required when auto_Ec is False.")
        return self


class CompositeSectionInputs(BaseModel):
    """
    Composite steel girder + concrete deck section properties.

    Cases computed per region:
      - steel only (non-composite)
      - composite, short-term (concrete / n)
      - composite, long-term (concrete / 3n)
      - cracked negative moment (concrete in tension ignored, concrete / n)
    """

    model_config = ConfigDict(extra="forbid")

    materials: MaterialInputs = Field(default_factory=MaterialInputs)
    negative: RegionInputs = Field(default_factory=RegionInputs, description="Negative moment region geometry")
    positive: RegionInputs = Field(default_factory=RegionInputs, description="Positive moment region geometry")

    positive_same_as_negative: bool = Field(
        False, description="Use the negative region geometry for both regions (one computed case)."
    )
    top_equals_bottom_flange: bool = Field(
        False, description="Bottom flange thickness/width are copied from the top flange."
    )
