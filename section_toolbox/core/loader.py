from __future__ import annotations
import importlib
import pkgutil
from typing import Dict, List, Optional
from loguru import logger
from .tool_base import ToolBase

TOOLS_PKG = "section_toolbox.tools"


def discover_tools() -> List[ToolBase]:
    """
    Imports every package under section_toolbox.tools and collects its `TOOL`.
    A package that fails to import is logged and skipped; a duplicate tool id
    keeps the first one found.
    """
    found: Dict[str, ToolBase] = {}
    pkg = importlib.import_module(TOOLS_PKG)
    for m in pkgutil.iter_modules(pkg.__path__):
        mod_name = f"{TOOLS_PKG}.{m.name}"
        try:
            mod = importlib.import_module(mod_name)
            tool = getattr(mod, "TOOL", None)
        except Exception as e:
            logger.exception(f"Failed loading tool {mod_name}: {e}")
            continue
        if tool is None:
            logger.warning(f"Module {mod_name} has no TOOL export; skipping.")
            continue
        if tool.meta.id in found:
            logger.warning(f"Duplicate tool id {tool.meta.id!r} in {mod_name}; skipping.")
            continue
        found[tool.meta.id] = tool
    return sorted(found.values(), key=lambda t: (t.meta.category.lower(), t.meta.name.lower()))


def get_tool(tool_id: str) -> Optional[ToolBase]:
    for tool in discover_tools():
        if tool.meta.id == tool_id:
            return tool
    return None
