from __future__ import annotations
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError


def format_validation_error(e: ValidationError) -> str:
    """One `dotted.path: message` line per pydantic error."""
    lines = []
    for err in e.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<inputs>"
        lines.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "\n".join(lines)


def validate_inputs(model: Optional[Type[BaseModel]], raw: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Returns (validated_dict, error_message). If model is None, returns raw as-is.
    The validated dict is fully populated with model defaults.
    """
    if model is None:
        return raw, None
    try:
        obj = model.model_validate(raw)
    except ValidationError as e:
        return {}, format_validation_error(e)
    return obj.model_dump(), None
