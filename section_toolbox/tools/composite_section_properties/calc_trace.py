from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from .paths import compute_input_hash


@dataclass(frozen=True)
class TraceMeta:
    tool_id: str
    tool_version: str
    report_version: str
    timestamp: str
    units_system: str
    input_hash: str
    code_basis: Optional[str] = None


@dataclass(frozen=True)
class TraceInput:
    id: str  # dotted path, e.g. negative.rebar_top.spacing_in
    label: str
    value: Any
    units: str


@dataclass(frozen=True)
class Assumption:
    id: str
    text: str


@dataclass(frozen=True)
class CalcVar:
    symbol: str
    description: str
    value: Any
    units: str
    source: str


@dataclass(frozen=True)
class CalcResult:
    value: float
    units: str


@dataclass(frozen=True)
class Reference:
    type: str  # "code" | "note" | "derived" | "constant"
    ref: str


@dataclass
class CalcStep:
    id: str
    section: str
    title: str
    output_symbol: str
    output_description: str
    equation_latex: str
    substitution_latex: str
    variables: List[CalcVar]
    result_unrounded: CalcResult
    decimals: int
    result_rounded: CalcResult
    references: List[Reference]
    warnings: List[str] = field(default_factory=list)


@dataclass
class CalcTrace:
    """Reproducible record of one section-properties run.

    Every export (HTML/PDF/Excel/JSON) renders from this object plus the
    engine result dict; nothing is recomputed at export time.
    """

    meta: TraceMeta
    inputs: List[TraceInput] = field(default_factory=list)
    assumptions: List[Assumption] = field(default_factory=list)
    steps: List[CalcStep] = field(default_factory=list)
    tables: Dict[str, Any] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        *,
        tool_id: str,
        tool_version: str,
        inputs: Dict[str, Any],
        input_model: Optional[Type[BaseModel]] = None,
        units_system: str = "US",
        report_version: str = "1.0",
        input_hash: Optional[str] = None,
        code_basis: Optional[str] = None,
    ) -> "CalcTrace":
        """Labels and units come from the input model's field metadata when given."""
        if input_hash is None:
            input_hash = compute_input_hash(inputs)

        meta = TraceMeta(
            tool_id=str(tool_id),
            tool_version=str(tool_version),
            report_version=str(report_version),
            timestamp=datetime.now().isoformat(timespec="seconds"),
            units_system=str(units_system),
            input_hash=str(input_hash),
            code_basis=code_basis,
        )

        catalog = field_catalog(input_model) if input_model is not None else {}
        flat = _flatten(inputs)
        trace_inputs = []
        for k in sorted(flat):
            label, units = catalog.get(k, (k.rsplit(".", 1)[-1].replace("_", " "), "-"))
            trace_inputs.append(TraceInput(id=k, label=label, value=flat[k], units=units))
        return cls(meta=meta, inputs=trace_inputs)

    def add_assumptions(self, texts: List[str]) -> None:
        start = len(self.assumptions) + 1
        for i, text in enumerate(texts, start=start):
            self.assumptions.append(Assumption(id=f"A{i}", text=str(text)))

    def record_region(self, region: Dict[str, Any]) -> None:
        """Component tables and headline properties for one region result dict."""
        key = region["key"]
        for case in ("steel_only", "composite_n", "composite_3n", "cracked_negative"):
            self.tables[f"{key}_{case}"] = region[case]["rows"]
        self.summary[key] = {
            "I_steel_in4": region["steel_only"]["i"],
            "I_n_in4": region["composite_n"]["i"],
            "I_3n_in4": region["composite_3n"]["i"],
            "I_cracked_in4": region["cracked_negative"]["i_cracked"],
            "y_na_cracked_in": region["cracked_negative"]["neutral_axis"],
            "na_approximated": region["cracked_negative"]["approximated"],
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def dump_trace_json(trace: CalcTrace, path: str) -> None:
    Path(path).write_text(
        json.dumps(trace.to_dict(), indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )


def field_catalog(model: Type[BaseModel], prefix: str = "") -> Dict[str, Tuple[str, str]]:
    """{dotted field id: (description, units)} for a nested pydantic model."""
    out: Dict[str, Tuple[str, str]] = {}
    for name, info in model.model_fields.items():
        key = f"{prefix}{name}"
        ann = info.annotation
        if isinstance(ann, type) and issubclass(ann, BaseModel):
            out.update(field_catalog(ann, prefix=f"{key}."))
            continue
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        out[key] = (info.description or name.replace("_", " "), str(extra.get("units", "-")))
    return out


def _flatten(d: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in d.items():
        key = f"{prefix}{k}"
        if isinstance(v, dict):
            out.update(_flatten(v, prefix=f"{key}."))
        else:
            out[key] = v
    return out


def _format_value_units(value: Any, units: str) -> str:
    text = f"{value:g}" if isinstance(value, (int, float)) else str(value)
    return f"{text}\\,\\mathrm{{{units}}}" if units and units != "-" else text


def substitute(equation_latex: str, variables: List[CalcVar]) -> str:
    """Replace whole symbols only: `c` must not hit `\\frac` or `\\bar{y}_c`."""
    out = equation_latex
    for v in variables:
        pattern = r"(?<![A-Za-z\\_])" + re.escape(v.symbol) + r"(?![A-Za-z_{])"
        out = re.sub(pattern, lambda _m, v=v: _format_value_units(v.value, v.units), out)
    return out


def compute_step(
    trace: CalcTrace,
    *,
    id: str,
    section: str,
    title: str,
    output_symbol: str,
    output_description: str,
    equation_latex: str,
    variables: List[Dict[str, Any]],
    compute_fn: Callable[[], float],
    units: str,
    decimals: int,
    references: List[Dict[str, Any]],
    warnings: Optional[List[str]] = None,
) -> float:
    """Evaluate one step, append it to the trace and return the rounded value."""
    if not id or not section or not title:
        raise ValueError("compute_step requires non-empty id/section/title.")

    var_objs: List[CalcVar] = []
    for v in variables:
        missing = [req for req in ("symbol", "description", "value", "units", "source") if req not in v]
        if missing:
            raise ValueError(f"Variable missing {missing} in step {id}.")
        var_objs.append(
            CalcVar(
                symbol=str(v["symbol"]),
                description=str(v["description"]),
                value=v["value"],
                units=str(v["units"]),
                source=str(v["source"]),
            )
        )

    ref_objs: List[Reference] = []
    for r in references:
        if "type" not in r or "ref" not in r:
            raise ValueError(f"Reference missing type/ref in step {id}.")
        ref_objs.append(Reference(type=str(r["type"]), ref=str(r["ref"])))

    unrounded = float(compute_fn())
    rounded = round(unrounded, int(decimals))

    trace.steps.append(
        CalcStep(
            id=id,
            section=section,
            title=title,
            output_symbol=output_symbol,
            output_description=output_description,
            equation_latex=equation_latex,
            substitution_latex=substitute(equation_latex, var_objs),
            variables=var_objs,
            result_unrounded=CalcResult(value=unrounded, units=units),
            decimals=int(decimals),
            result_rounded=CalcResult(value=rounded, units=units),
            references=ref_objs,
            warnings=list(warnings or []),
        )
    )

    return rounded
