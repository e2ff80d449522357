from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .calc_trace import CalcTrace, dump_trace_json
from .report_renderer import SUMMARY_HEADERS, fmt, render_report_html, summary_rows


def _autosize(ws):
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            val = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(val))
        ws.column_dimensions[col_letter].width = min(80, max(10, max_len + 2))


def export_html(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Path:
    p = out_dir / "report.html"
    p.write_text(render_report_html(trace, results), encoding="utf-8")
    return p


def export_pdf(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Path:
    """
    Summary PDF: materials, assumptions and the I / S / NA table per region.
    Component breakdowns are in report.html and results.xlsx.
    """
    p = out_dir / "report.pdf"
    c = canvas.Canvas(str(p), pagesize=letter)
    w, h = letter
    y = h - 72

    def line(text: str, font: str = "Helvetica", size: int = 9, step: int = 12, indent: int = 72) -> None:
        nonlocal y
        if y < 72:
            c.showPage()
            y = h - 72
        c.setFont(font, size)
        c.drawString(indent, y, text)
        y -= step

    line("Composite Steel Girder + Concrete Deck Section Properties", "Helvetica-Bold", 14, 24)
    line(f"Tool: {trace.meta.tool_id} v{trace.meta.tool_version}", size=10, step=14)
    line(f"Input hash: {trace.meta.input_hash}", size=10, step=14)
    line(f"Generated: {trace.meta.timestamp}", size=10, step=22)

    mat = results.get("materials", {})
    line("Materials", "Helvetica-Bold", 10, 14)
    for label, key in (("Es (ksi)", "Es"), ("f'c (ksi)", "fc"), ("Ec (ksi)", "Ec"), ("n", "n"), ("3n", "n3")):
        line(f"{label}: {fmt(mat.get(key))}", indent=84)
    y -= 6

    line("Assumptions", "Helvetica-Bold", 10, 14)
    for a in trace.assumptions:
        line(f"{a.id}: {a.text}", size=8, indent=84)
    y -= 6

    for e in results.get("errors", []):
        line(f"ERROR: {e}", "Helvetica-Bold", 9)

    col_x = [72, 200, 265, 340, 415, 490]
    for region in results.get("regions", []):
        y -= 8
        line(region["label"], "Helvetica-Bold", 11, 16)
        if y < 90:
            c.showPage()
            y = h - 72
        c.setFont("Helvetica-Bold", 8)
        for x, head in zip(col_x, SUMMARY_HEADERS):
            c.drawString(x, y, head)
        y -= 12
        c.setFont("Helvetica", 8)
        for row in summary_rows(region):
            c.drawString(col_x[0], y, str(row[0]))
            for x, v in zip(col_x[1:], row[1:]):
                c.drawString(x, y, fmt(v))
            y -= 12

    c.showPage()
    c.save()
    return p


def export_excel(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Path:
    wb = Workbook()

    ws = wb.active
    ws.title = "Inputs"
    ws.append(["id", "label", "value", "units"])
    for i in trace.inputs:
        ws.append([i.id, i.label, i.value, i.units])
    _autosize(ws)

    ws2 = wb.create_sheet("Assumptions")
    ws2.append(["id", "text"])
    for a in trace.assumptions:
        ws2.append([a.id, a.text])
    _autosize(ws2)

    ws3 = wb.create_sheet("Calcs")
    ws3.append(["id", "section", "title", "equation", "substitution", "result_rounded", "units"])
    for s in trace.steps:
        ws3.append([s.id, s.section, s.title, s.equation_latex, s.substitution_latex, s.result_rounded.value, s.result_rounded.units])
    _autosize(ws3)

    ws4 = wb.create_sheet("Summary")
    ws4.append(["region"] + SUMMARY_HEADERS)
    for region in results.get("regions", []):
        for row in summary_rows(region):
            ws4.append([region["label"]] + row)
    _autosize(ws4)

    ws5 = wb.create_sheet("Components")
    ws5.append(["region", "case", "component", "A (in^2)", "Yb (in)", "AYb (in^3)", "Io (in^4)", "d (in)", "Io + Ad^2 (in^4)"])
    for region in results.get("regions", []):
        for case_key, case_label in (
            ("steel_only", "Non-composite"),
            ("composite_n", "Composite (n)"),
            ("composite_3n", "Composite (3n)"),
            ("cracked_negative", "Cracked negative"),
        ):
            for r in region[case_key]["rows"]:
                ws5.append([region["label"], case_label, r["name"], r["area"], r["yb"], r["ayb"], r["io"], r["d"], r["io_plus_ad2"]])
    _autosize(ws5)

    p = out_dir / "results.xlsx"
    wb.save(p)
    return p


def export_json(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Dict[str, Path]:
    p1 = out_dir / "calc_trace.json"
    dump_trace_json(trace, str(p1))

    p2 = out_dir / "results.json"
    p2.write_text(json.dumps(results, indent=2, ensure_ascii=True, allow_nan=False), encoding="utf-8")
    return {"calc_trace": p1, "results": p2}


def export_all(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Dict[str, Path]:
    outputs: Dict[str, Path] = {}
    outputs["html"] = export_html(trace, out_dir, results)
    outputs["pdf"] = export_pdf(trace, out_dir, results)
    outputs.update(export_json(trace, out_dir, results))
    outputs["excel"] = export_excel(trace, out_dir, results)
    return outputs
