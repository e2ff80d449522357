from __future__ import annotations

import json
import os
import shutil
import sys
import tempfile
from pathlib import Path

from loguru import logger

from section_toolbox.core.cli import main as cli_main
from section_toolbox.core.loader import discover_tools

from .tool import TOOL


def _assert_exists(p: Path) -> None:
    assert p.exists(), f"Missing: {p}"


def _check_outputs(run_dir: Path) -> None:
    _assert_exists(run_dir / "report.html")
    _assert_exists(run_dir / "report.pdf")
    _assert_exists(run_dir / "calc_trace.json")
    _assert_exists(run_dir / "results.json")
    _assert_exists(run_dir / "results.xlsx")
    _assert_exists(run_dir / "run.log")


def _with_temp_user_dir(fn) -> None:
    tmp = Path(tempfile.mkdtemp(prefix="sectiontoolbox_localappdata_"))
    old = os.environ.get("LOCALAPPDATA")
    try:
        os.environ["LOCALAPPDATA"] = str(tmp)  # force outputs to temp
        fn()
    finally:
        if old is None:
            os.environ.pop("LOCALAPPDATA", None)
        else:
            os.environ["LOCALAPPDATA"] = old
        shutil.rmtree(tmp, ignore_errors=True)


def test_tool_is_discovered():
    ids = [t.meta.id for t in discover_tools()]
    assert "composite_section_properties" in ids


def test_compute_is_json_safe():
    out = TOOL.compute(TOOL.default_inputs())
    assert out["ok"] is True
    json.dumps(out, allow_nan=False)
    assert len(out["regions"]) == 2
    assert out["regions"][0]["steel_only"]["section_modulus"]["topOfSteel"] is not None


def test_compute_rejects_malformed_request():
    inputs = TOOL.default_inputs()
    inputs["materials"]["Es_ksi"] = -1.0
    out = TOOL.compute(inputs)
    assert out["ok"] is False
    assert "Es_ksi" in out["error"]


def test_smoke_case_1():
    def case():
        res = TOOL.run_batch(TOOL.default_inputs())
        assert res["ok"] is True
        run_dir = Path(res["run_dir"])
        _check_outputs(run_dir)
        saved = json.loads((run_dir / "results.json").read_text(encoding="utf-8"))
        assert saved["materials"]["n"] == res["materials"]["n"]
        trace = json.loads((run_dir / "calc_trace.json").read_text(encoding="utf-8"))
        assert [s["id"] for s in trace["steps"]][:3] == ["M1", "M2", "M3"]

    _with_temp_user_dir(case)


def test_smoke_case_2():
    def case():
        inputs = TOOL.default_inputs()
        inputs["negative"]["D_in"] = 0.0
        inputs["positive"]["rebar_top"].update(
            {"alternating_bars": True, "alt_bar_size": "#6", "alt_spacing_in": 12.0}
        )
        res = TOOL.run_batch(inputs)
        # region error is reported, the valid region is still exported
        assert res["ok"] is False
        assert "error" not in res
        assert len(res["errors"]) == 1
        assert [r["key"] for r in res["regions"]] == ["positive"]
        _check_outputs(Path(res["run_dir"]))

    _with_temp_user_dir(case)


def test_cli_list_and_compute(capsys):
    def case():
        try:
            assert cli_main(["--list"]) == 0
            assert "composite_section_properties" in capsys.readouterr().out
            assert cli_main(["--no-export"]) == 0
            out = json.loads(capsys.readouterr().out)
            assert out["ok"] is True
            assert cli_main(["--tool", "no_such_tool"]) == 2
            assert (Path(os.environ["LOCALAPPDATA"]) / "SectionToolbox" / "logs" / "section_toolbox.log").exists()
        finally:
            # drop the app sinks installed by the CLI before the temp dir goes away
            logger.remove()
            logger.add(sys.stderr)

    _with_temp_user_dir(case)
