from __future__ import annotations

import hashlib
import json
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from section_toolbox.core.paths import user_data_dir

TOOL_ID = "composite_section_properties"


def create_run_dir(tool_id: str = TOOL_ID, input_hash: str | None = None) -> Path:
    """Run directory creator.

    Location:
      <user data>/<tool_id>/runs/YYYYMMDD_HHMMSS_<short_hash>/

    Always under the user data directory; timestamp + short hash avoid collisions.
    """
    root = user_data_dir() / tool_id / "runs"
    root.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")

    seed = f"{ts}:{os.getpid()}:{time.time_ns()}"
    rand = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8]

    if input_hash:
        short = f"{str(input_hash)[:6]}{rand[:2]}"
    else:
        short = rand

    run_dir = root / f"{ts}_{short}"
    run_dir.mkdir(parents=True, exist_ok=False)
    return run_dir


def _normalize(v: Any) -> Any:
    if isinstance(v, dict):
        return {str(k): _normalize(v[k]) for k in sorted(v.keys())}
    if isinstance(v, (list, tuple)):
        return [_normalize(x) for x in v]
    if isinstance(v, float):
        # stable float repr across platforms
        return float(f"{v:.12g}")
    return v


def compute_input_hash(inputs: Dict[str, Any]) -> str:
    """Deterministic input hash computed from normalized, sorted keys (nested)."""
    payload = json.dumps(_normalize(inputs), sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:12]
