from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional

from loguru import logger

from .loader import discover_tools, get_tool
from .logging import configure_logging


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Section Toolbox headless runner")
    parser.add_argument("--list", action="store_true", help="List discovered tools and exit")
    parser.add_argument("--tool", default="composite_section_properties")
    parser.add_argument("--inputs", type=Path, default=None, help="JSON input file (defaults used when omitted)")
    parser.add_argument("--no-export", action="store_true", help="Compute only; no run directory")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    configure_logging(console_level=args.log_level)
    if args.list:
        for t in discover_tools():
            print(f"{t.meta.id}\t{t.meta.category}\t{t.meta.name} v{t.meta.version}")
        return 0

    tool = get_tool(args.tool)
    if tool is None:
        logger.error(f"Unknown tool: {args.tool}")
        return 2

    if args.inputs is not None:
        inputs = json.loads(args.inputs.read_text(encoding="utf-8"))
    else:
        inputs = tool.default_inputs()

    out = tool.compute(inputs) if args.no_export else tool.run(inputs)
    print(json.dumps(out, indent=2))
    return 0 if out.get("ok") else 1


if __name__ == "__main__":
    raise SystemExit(main())
