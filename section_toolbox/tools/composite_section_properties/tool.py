from __future__ import annotations

import math
import traceback
from typing import Any, Dict

from loguru import logger

from section_toolbox.core.schema_utils import validate_inputs
from section_toolbox.core.tool_base import ToolMeta

from .calc_trace import CalcTrace, compute_step
from .constants import DEFAULT_UNITS_SYSTEM, EC_COEFFICIENT, LONG_TERM_RATIO_FACTOR
from .engine import RegionResult, SectionPropsResult, compute_section_props, get_default_input
from .exports import export_all
from .logging_utils import get_run_logger, remove_run_logger_sink
from .models import CompositeSectionInputs
from .paths import compute_input_hash, create_run_dir


def _trace_materials(trace: CalcTrace, res: SectionPropsResult) -> None:
    mat = res.materials
    if mat.Ec_method == "auto":
        compute_step(
            trace,
            id="M1",
            section="Materials",
            title="Concrete modulus of elasticity",
            output_symbol="E_c",
            output_description="Concrete modulus",
            equation_latex=r"E_c = 57\sqrt{1000\,f'_c}",
            variables=[
                {"symbol": "f'_c", "description": "Concrete strength", "value": mat.fc, "units": "ksi", "source": "input:materials.fc_ksi"},
            ],
            compute_fn=lambda: EC_COEFFICIENT * math.sqrt(mat.fc * 1000.0),
            units="ksi",
            decimals=1,
            references=[{"type": "code", "ref": "AASHTO LRFD 5.4.2.4 / ACI 318 19.2.2.1 (normal weight)"}],
        )
    else:
        compute_step(
            trace,
            id="M1",
            section="Materials",
            title="Concrete modulus of elasticity (user)",
            output_symbol="E_c",
            output_description="Concrete modulus",
            equation_latex=r"E_c = E_{c,user}",
            variables=[
                {"symbol": "E_{c,user}", "description": "Manual Ec", "value": mat.Ec, "units": "ksi", "source": "input:materials.Ec_manual_ksi"},
            ],
            compute_fn=lambda: mat.Ec,
            units="ksi",
            decimals=1,
            references=[{"type": "note", "ref": "user supplied"}],
        )

    compute_step(
        trace,
        id="M2",
        section="Materials",
        title="Short-term modular ratio",
        output_symbol="n",
        output_description="Modular ratio Es / Ec",
        equation_latex=r"n = E_s / E_c",
        variables=[
            {"symbol": "E_s", "description": "Steel modulus", "value": mat.Es, "units": "ksi", "source": "input:materials.Es_ksi"},
            {"symbol": "E_c", "description": "Concrete modulus", "value": mat.Ec, "units": "ksi", "source": "step:M1"},
        ],
        compute_fn=lambda: mat.n,
        units="-",
        decimals=3,
        references=[{"type": "derived", "ref": "engine.derive_materials"}],
    )

    compute_step(
        trace,
        id="M3",
        section="Materials",
        title="Long-term modular ratio",
        output_symbol="3n",
        output_description="Creep-adjusted modular ratio",
        equation_latex=r"n_{LT} = k\,n_{ST}",
        variables=[
            {"symbol": "k", "description": "Long-term factor", "value": LONG_TERM_RATIO_FACTOR, "units": "-", "source": "constant:LONG_TERM_RATIO_FACTOR"},
            {"symbol": "n_{ST}", "description": "Short-term modular ratio", "value": mat.n, "units": "-", "source": "step:M2"},
        ],
        compute_fn=lambda: mat.n3,
        units="-",
        decimals=3,
        references=[{"type": "code", "ref": "AASHTO LRFD 6.10.1.1.1b"}],
    )


def _trace_region(trace: CalcTrace, r: RegionResult) -> None:
    prefix = r.key[:3].upper()
    cases = (
        ("steel", "Non-composite steel", r.steel_only.total_area, r.steel_only.y_bar, r.steel_only.i),
        ("n", "Composite (n)", r.composite_n.total_area, r.composite_n.y_bar, r.composite_n.i),
        ("3n", "Composite (3n)", r.composite_3n.total_area, r.composite_3n.y_bar, r.composite_3n.i),
    )
    for idx, (case, label, area, y_bar, I) in enumerate(cases, start=1):
        compute_step(
            trace,
            id=f"{prefix}{idx}",
            section=r.label,
            title=f"{label}: centroid and moment of inertia",
            output_symbol=r"\bar{y}",
            output_description=f"Centroid above bottom of steel (I = {I:.1f} in^4)",
            equation_latex=r"\bar{y} = \sum A_i y_i / A,\;\; I = \sum (I_{o,i} + A_i d_i^2)",
            variables=[
                {"symbol": "A", "description": f"Transformed area ({case})", "value": round(area, 4), "units": "in^2", "source": f"derived:{case}"},
            ],
            compute_fn=lambda y=y_bar: y,
            units="in",
            decimals=3,
            references=[{"type": "derived", "ref": "analysis.summary.summarize_section"}],
        )

    cr = r.cracked_negative
    compute_step(
        trace,
        id=f"{prefix}4",
        section=r.label,
        title="Cracked negative moment neutral axis",
        output_symbol="y_{NA}",
        output_description=f"Neutral axis above bottom of steel (I_cr = {cr.i_cracked:.1f} in^4)",
        equation_latex=r"\sum A_i (y_i - y_{NA}) + \frac{b_{eff}\,c}{n}\left(\bar{y}_c - y_{NA}\right) = 0",
        variables=[
            {"symbol": "b_{eff}", "description": "Effective width", "value": r.region.b_eff_in, "units": "in", "source": "input:b_eff_in"},
            {"symbol": "c", "description": "Concrete compression depth", "value": round(cr.compression_depth, 4), "units": "in", "source": "derived:cracked"},
        ],
        compute_fn=lambda: cr.neutral_axis,
        units="in",
        decimals=3,
        references=[{"type": "derived", "ref": "analysis.cracked.solve_cracked_neutral_axis"}],
        warnings=["Neutral axis is an approximate centroid estimate (force balance not bracketed)."] if cr.approximated else None,
    )


class CompositeSectionPropertiesTool:
    """Composite girder section properties tool.

    - compute(): pure engine call, JSON-safe dict out (no files).
    - run_batch(): compute + calc trace + calc package exports in a run directory.
    """

    meta = ToolMeta(
        id="composite_section_properties",
        name="Composite Section Properties",
        category="Bridge Design",
        version="1.0.0",
        description="Steel girder + concrete deck section properties: steel only, composite n and 3n, cracked negative moment.",
    )

    InputModel = CompositeSectionInputs

    def default_inputs(self) -> dict:
        return get_default_input()

    def compute(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        inputs_norm, err = validate_inputs(self.InputModel, inputs)
        if err:
            return {"ok": False, "error": err}
        res = compute_section_props(inputs_norm)
        out = res.to_dict()
        out["ok"] = res.ok
        return out

    def run_batch(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Run the full calculation + exports and return results."""
        inputs_norm, err = validate_inputs(self.InputModel, inputs)
        if err:
            logger.warning(f"{self.meta.id}: input validation failed")
            return {"ok": False, "error": err}

        input_hash = compute_input_hash(inputs_norm)
        run_dir = create_run_dir(self.meta.id, input_hash)
        log, sink_id = get_run_logger(run_dir, self.meta.id, input_hash)

        try:
            log.info("Starting composite section properties batch run")
            log.info(f"Inputs (validated): {inputs_norm}")

            with logger.contextualize(tool_id=self.meta.id, run_dir=str(run_dir)):
                res = compute_section_props(inputs_norm)

            trace = CalcTrace.new(
                tool_id=self.meta.id,
                tool_version=self.meta.version,
                units_system=DEFAULT_UNITS_SYSTEM,
                code_basis="Elastic transformed-section analysis (AASHTO LRFD 6.10.1.1.1)",
                inputs=inputs_norm,
                input_model=self.InputModel,
                input_hash=input_hash,
            )
            trace.add_assumptions(res.assumptions)
            _trace_materials(trace, res)
            for region in res.regions:
                _trace_region(trace, region)

            body = res.to_dict()
            for region in body["regions"]:
                trace.record_region(region)
            if res.errors:
                trace.summary["errors"] = list(res.errors)
                for e in res.errors:
                    log.warning(e)

            results: Dict[str, Any] = {
                "ok": res.ok,
                "run_dir": str(run_dir),
                "input_hash": input_hash,
                **body,
            }

            out_paths = export_all(trace, run_dir, results)
            results["outputs"] = {k: str(v) for k, v in out_paths.items()}

            log.info("Batch run complete")
            return results

        except Exception as e:
            log.exception("Batch run failed")
            return {
                "ok": False,
                "run_dir": str(run_dir),
                "input_hash": input_hash,
                "error": str(e),
                "traceback": traceback.format_exc(),
            }

        finally:
            remove_run_logger_sink(sink_id)

    def run(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Headless entry point used by the host; same as run_batch."""
        return self.run_batch(inputs)


TOOL = CompositeSectionPropertiesTool()
