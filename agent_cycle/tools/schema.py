"""Generate tool input schemas from Python type hints and docstrings.

Parameters become JSON-schema properties; their descriptions come from the
``Args:`` section of a Google-style docstring. Parameters with a default are
optional and marked ``nullable``.
"""

import inspect
import re
import types
from typing import Any, Callable, Literal, Union, get_args, get_origin, get_type_hints


class TypeHintParsingException(Exception):
    """A parameter lacks a type hint or uses a type that cannot be expressed."""
    pass


_PRIMITIVES: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
    tuple: "array",
    set: "array",
}

_SECTION_HEADERS = ("Args", "Arguments", "Returns", "Raises", "Yields", "Example", "Examples", "Note")


def type_to_schema(hint: Any) -> dict[str, Any]:
    """Convert one type hint to a JSON-schema fragment.

    Raises:
        TypeHintParsingException: If the hint has no JSON-schema equivalent
    """
    if hint is Any:
        return {}
    if hint is type(None):
        return {"type": "null"}
    if hint in _PRIMITIVES:
        return {"type": _PRIMITIVES[hint]}

    origin = get_origin(hint)
    args = get_args(hint)

    if origin is Literal:
        return {"enum": list(args)}
    if origin in (Union, types.UnionType):
        non_null = [a for a in args if a is not type(None)]
        if len(non_null) == 1:
            schema = type_to_schema(non_null[0])
        else:
            schema = {"anyOf": [type_to_schema(a) for a in non_null]}
        if len(non_null) != len(args):
            schema["nullable"] = True
        return schema
    if origin in (list, set, tuple):
        schema: dict[str, Any] = {"type": "array"}
        if args and args[0] is not Ellipsis:
            schema["items"] = type_to_schema(args[0])
        return schema
    if origin is dict:
        schema = {"type": "object"}
        if len(args) == 2:
            schema["additionalProperties"] = type_to_schema(args[1])
        return schema

    raise TypeHintParsingException(f"Unsupported type hint: {hint!r}")


def parse_docstring(doc: str | None) -> tuple[str, dict[str, str]]:
    """Split a Google-style docstring into a description and per-argument docs."""
    if not doc:
        return "", {}
    doc = inspect.cleandoc(doc)

    description_lines: list[str] = []
    arg_docs: dict[str, str] = {}
    section = None
    current_arg = None

    for line in doc.splitlines():
        stripped = line.strip()
        header = stripped.rstrip(":")
        if stripped.endswith(":") and header in _SECTION_HEADERS:
            section = header
            current_arg = None
            continue
        if section is None:
            description_lines.append(stripped)
        elif section in ("Args", "Arguments") and stripped:
            match = re.match(r"^(\*{0,2}\w+)\s*(?:\([^)]*\))?\s*:\s*(.*)$", stripped)
            if match and line.startswith(" " * 4) and not line.startswith(" " * 8):
                current_arg = match.group(1).lstrip("*")
                arg_docs[current_arg] = match.group(2)
            elif current_arg:
                arg_docs[current_arg] = f"{arg_docs[current_arg]} {stripped}".strip()

    # Description is the first paragraph
    paragraphs = "\n".join(description_lines).strip().split("\n\n")
    description = " ".join(paragraphs[0].split()) if paragraphs else ""
    return description, arg_docs


def generate_input_schema(
    func: Callable[..., Any],
    skip_params: tuple[str, ...] = ("self", "cls"),
) -> dict[str, Any]:
    """Build an object schema for the parameters of ``func``.

    Raises:
        TypeHintParsingException: If a parameter has no type hint
    """
    signature = inspect.signature(func)
    try:
        hints = get_type_hints(func)
    except (NameError, TypeError) as e:
        raise TypeHintParsingException(f"Could not resolve type hints: {e}") from e
    _, arg_docs = parse_docstring(func.__doc__)

    properties: dict[str, Any] = {}
    required: list[str] = []
    for name, param in signature.parameters.items():
        if name in skip_params:
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if name not in hints:
            raise TypeHintParsingException(f"Parameter '{name}' is missing a type hint")

        prop = type_to_schema(hints[name])
        prop["description"] = arg_docs.get(name, f"Parameter {name}")
        if param.default is inspect.Parameter.empty:
            required.append(name)
        else:
            prop["nullable"] = True
        properties[name] = prop

    return {"type": "object", "properties": properties, "required": required}


def generate_tool_schema(
    func: Callable[..., Any],
    name: str | None = None,
    description: str | None = None,
    skip_params: tuple[str, ...] = ("self", "cls"),
) -> dict[str, Any]:
    """Build a ``{"name", "description", "input_schema"}`` dict for ``func``.

    Raises:
        TypeHintParsingException: If type hints are missing or unsupported
    """
    doc_description, _ = parse_docstring(func.__doc__)
    return {
        "name": name or func.__name__,
        "description": description or doc_description or f"Tool {name or func.__name__}",
        "input_schema": generate_input_schema(func, skip_params),
    }
