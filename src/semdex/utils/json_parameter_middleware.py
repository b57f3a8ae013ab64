"""JSON parameter conversion for FastMCP tools.

Some MCP clients send list parameters as JSON strings ('["a.ts", "b.ts"]')
instead of native lists. json_convert decodes such strings before the tool
function sees them, using the function's type hints to decide what to decode.
"""

import functools
import inspect
import json
import logging
import types
from collections.abc import Callable
from typing import Any, TypeVar, get_args, get_origin, get_type_hints

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_COLLECTIONS = (list, dict, tuple, set)


class ParameterConversionError(ValueError):
    """A tool parameter could not be converted to its declared type."""


def _accepts(expected_type: Any, kind: type) -> bool:
    """Whether `expected_type` (possibly a union) admits values of `kind`."""
    if get_origin(expected_type) is types.UnionType:
        return any(_accepts(arg, kind) for arg in get_args(expected_type))
    return expected_type is kind or get_origin(expected_type) is kind


def _looks_like_json(value: str) -> bool:
    stripped = value.strip()
    return (stripped.startswith("[") and stripped.endswith("]")) or (
        stripped.startswith("{") and stripped.endswith("}")
    )


def convert_value(value: Any, expected_type: Any, param_name: str) -> Any:
    """Decode a JSON-string value when the declared type expects a collection.

    A plain string stays a string when the type also admits str, so
    `str | list[str]` keeps "a.ts" as is but decodes '["a.ts"]'.
    """
    if not isinstance(value, str):
        return value

    wanted = [kind for kind in _COLLECTIONS if _accepts(expected_type, kind)]
    if not wanted:
        return value
    if _accepts(expected_type, str) and not _looks_like_json(value):
        return value

    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ParameterConversionError(f"Invalid JSON in parameter '{param_name}': {e}") from e

    for kind in wanted:
        if isinstance(parsed, kind):
            return parsed
        if kind in (tuple, set) and isinstance(parsed, list):
            return kind(parsed)

    expected = " or ".join(kind.__name__ for kind in wanted)
    raise ParameterConversionError(
        f"Parameter '{param_name}' must be a {expected}, got {type(parsed).__name__} from JSON"
    )


def json_convert(func: F) -> F:
    """
    Decorator that converts JSON string parameters before calling the tool.

    Usage:
        @mcp.tool
        @json_convert
        def my_tool(file_paths: str | list[str] | None = None) -> dict:
            ...

    Invalid parameters produce {"error": {"code": "INVALID_INPUT", ...}}
    instead of an exception.
    """
    signature = inspect.signature(func)
    type_hints = get_type_hints(func)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        bound = signature.bind(*args, **kwargs)
        bound.apply_defaults()

        converted = {}
        for name, value in bound.arguments.items():
            if name not in type_hints:
                converted[name] = value
                continue
            try:
                converted[name] = convert_value(value, type_hints[name], name)
            except ParameterConversionError as e:
                logger.debug("Rejected parameter for %s: %s", func.__name__, e)
                return {"error": {"code": "INVALID_INPUT", "message": str(e)}}
        return func(**converted)

    return wrapper  # type: ignore
