from __future__ import annotations

import html
from typing import Any, Dict, List, Optional

from .calc_trace import CalcTrace

EM_DASH = "—"


def _h(s: Any) -> str:
    return html.escape(str(s))


def fmt(value: Optional[float], digits: int = 3) -> str:
    """Number for display; None (undefined) renders as an em-dash."""
    if value is None:
        return EM_DASH
    try:
        v = float(value)
    except (TypeError, ValueError):
        return str(value)
    if v != v:  # NaN
        return EM_DASH
    return f"{v:,.{digits}f}"


def summary_rows(region: Dict[str, Any]) -> List[List[Any]]:
    """[case, I, S top slab, S top steel, S bot steel, NA/y_bar] for one region result dict."""
    steel = region["steel_only"]
    cn = region["composite_n"]
    c3n = region["composite_3n"]
    cr = region["cracked_negative"]
    return [
        ["Non-composite (steel)", steel["i"], None,
         steel["section_modulus"].get("topOfSteel"), steel["section_modulus"].get("bottomOfSteel"), steel["y_bar"]],
        ["Composite (n)", cn["i"], cn["section_modulus"].get("topOfSlab"),
         cn["section_modulus"].get("topOfSteel"), cn["section_modulus"].get("bottomOfSteel"), cn["y_bar"]],
        ["Composite (3n)", c3n["i"], c3n["section_modulus"].get("topOfSlab"),
         c3n["section_modulus"].get("topOfSteel"), c3n["section_modulus"].get("bottomOfSteel"), c3n["y_bar"]],
        ["Composite (cracked neg.)", cr["i_cracked"], None,
         cr["section_modulus"].get("topOfSteel"), cr["section_modulus"].get("bottomOfSteel"), cr["neutral_axis"]],
    ]


SUMMARY_HEADERS = ["Case", "I (in^4)", "S top slab (in^3)", "S top steel (in^3)", "S bot steel (in^3)", "NA y (in)"]


def _component_table(title: str, rows: List[Dict[str, Any]]) -> str:
    parts = [f"<h3>{_h(title)}</h3>"]
    parts.append(
        "<table><tr><th>Component</th><th>A (in^2)</th><th>Yb (in)</th><th>AYb (in^3)</th>"
        "<th>Io (in^4)</th><th>d (in)</th><th>Io + Ad^2 (in^4)</th></tr>"
    )
    for r in rows:
        parts.append(
            f"<tr><td>{_h(r['name'])}</td><td>{fmt(r['area'])}</td><td>{fmt(r['yb'])}</td><td>{fmt(r['ayb'])}</td>"
            f"<td>{fmt(r['io'])}</td><td>{fmt(r['d'])}</td><td>{fmt(r['io_plus_ad2'])}</td></tr>"
        )
    parts.append(
        f"<tr><th>Total</th><th>{fmt(sum(r['area'] for r in rows))}</th><th>{EM_DASH}</th>"
        f"<th>{fmt(sum(r['ayb'] for r in rows))}</th><th>{EM_DASH}</th><th>{EM_DASH}</th>"
        f"<th>{fmt(sum(r['io_plus_ad2'] for r in rows))}</th></tr>"
    )
    parts.append("</table>")
    return "".join(parts)


def render_report_html(trace: CalcTrace, results: Dict[str, Any]) -> str:
    meta = trace.meta

    css = """
    @page { size: letter; margin: 0.6in; }
    body { font-family: Arial, Helvetica, sans-serif; font-size: 10.5pt; color: #111; }
    h1 { font-size: 16pt; margin: 0 0 6px 0; }
    h2 { font-size: 12.5pt; margin: 16px 0 6px 0; border-bottom: 1px solid #ccc; padding-bottom: 2px; }
    h3 { font-size: 11pt; margin: 12px 0 4px 0; }
    .meta { font-size: 9pt; color: #333; }
    .box { border: 1px solid #999; padding: 8px; margin: 6px 0; }
    .eq { font-family: "Courier New", monospace; background: #f7f7f7; padding: 6px; white-space: pre-wrap; }
    .err { color: #b00; font-weight: bold; }
    table { border-collapse: collapse; width: 100%; margin: 6px 0 10px 0; }
    th, td { border: 1px solid #bbb; padding: 4px 6px; vertical-align: top; }
    th { background: #f1f1f1; text-align: left; }
    """

    out: List[str] = []
    out.append("<!doctype html><html><head><meta charset='utf-8'>")
    out.append(f"<title>Composite Section Properties - {_h(meta.input_hash)}</title>")
    out.append(f"<style>{css}</style></head><body>")

    out.append("<h1>Composite Steel Girder + Concrete Deck Section Properties</h1>")
    out.append(
        "<div class='meta'>"
        f"<div><b>Tool:</b> {_h(meta.tool_id)} v{_h(meta.tool_version)}</div>"
        f"<div><b>Timestamp:</b> {_h(meta.timestamp)}</div>"
        f"<div><b>Units System:</b> {_h(meta.units_system)}</div>"
        f"<div><b>Input Hash:</b> {_h(meta.input_hash)}</div>"
        "</div>"
    )

    mat = results.get("materials", {})
    out.append("<h2>Materials</h2><table>")
    for label, key in (("Es (ksi)", "Es"), ("f'c (ksi)", "fc"), ("Ec (ksi)", "Ec"), ("n", "n"), ("3n", "n3")):
        out.append(f"<tr><th>{_h(label)}</th><td>{fmt(mat.get(key))}</td></tr>")
    out.append("</table>")

    out.append("<h2>Assumptions</h2>")
    if trace.assumptions:
        out.append("<ul>")
        for a in trace.assumptions:
            out.append(f"<li><b>{_h(a.id)}</b>: {_h(a.text)}</li>")
        out.append("</ul>")
    else:
        out.append("<div class='box'>None.</div>")

    if results.get("errors"):
        out.append("<h2>Errors</h2><ul>")
        for e in results["errors"]:
            out.append(f"<li class='err'>{_h(e)}</li>")
        out.append("</ul>")

    for region in results.get("regions", []):
        out.append(f"<h2>{_h(region['label'])}</h2>")
        out.append("<table><tr>" + "".join(f"<th>{_h(h)}</th>" for h in SUMMARY_HEADERS) + "</tr>")
        for row in summary_rows(region):
            out.append("<tr><td>" + _h(row[0]) + "</td>" + "".join(f"<td>{fmt(v)}</td>" for v in row[1:]) + "</tr>")
        out.append("</table>")
        out.append(_component_table("Composite (n) components", region["composite_n"]["rows"]))
        out.append(_component_table("Composite (3n) components", region["composite_3n"]["rows"]))
        out.append(_component_table("Cracked negative components (about NA)", region["cracked_negative"]["rows"]))

    out.append("<h2>Calculations</h2>")
    for s in trace.steps:
        out.append(f"<h3>{_h(s.id)}: {_h(s.title)}</h3>")
        out.append("<div class='box'>")
        out.append(f"<div><b>Output:</b> {_h(s.output_symbol)} ({_h(s.output_description)})</div>")
        out.append("<div class='eq'><b>Equation</b>\n" + _h(s.equation_latex) + "</div>")
        out.append("<div class='eq'><b>Substitution</b>\n" + _h(s.substitution_latex) + "</div>")
        out.append(
            f"<div><b>Result:</b> {_h(s.result_rounded.value)} {_h(s.result_rounded.units)}</div>"
        )
        for w in s.warnings:
            out.append(f"<div class='err'>{_h(w)}</div>")
        out.append("</div>")

    out.append("</body></html>")
    return "".join(out)
