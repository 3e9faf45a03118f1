"""
Tool Registry

A "tool" is a backend function the model may choose to call. The registry
holds each tool's name, description and JSON-schema parameters, hands the
schemas to the chat API, and executes the calls the model asks for.

Execution never raises: unknown tools, bad arguments and exceptions inside a
tool all come back as a ToolResult with ``error`` set, so the model can read
the failure and recover.

Example:
--------
```python
registry = ToolRegistry()

@registry.register
def fetch_patient_history(patient_id: str) -> dict:
    \"\"\"Return the medical history for a patient.\"\"\"
    ...

registry.schemas()   # -> [{"type": "function", "function": {...}}]
registry.execute("fetch_patient_history", {"patient_id": "P001"})
```
"""

import inspect
import json
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

_JSON_TYPES = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
}


def _type_to_schema(annotation: Any) -> Dict[str, Any]:
    """Map a Python annotation to a JSON-schema fragment."""
    if annotation is inspect.Parameter.empty or annotation is Any:
        return {}

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is Union:
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            return _type_to_schema(non_none[0])
        return {}

    if origin in (list, List):
        schema: Dict[str, Any] = {"type": "array"}
        if args:
            item_schema = _type_to_schema(args[0])
            if item_schema:
                schema["items"] = item_schema
        return schema

    if origin in (dict, Dict):
        return {"type": "object"}

    if annotation in _JSON_TYPES:
        return {"type": _JSON_TYPES[annotation]}

    return {}


def infer_parameters(func: Callable) -> Dict[str, Any]:
    """Build a JSON-schema ``parameters`` object from a function signature."""
    signature = inspect.signature(func)
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        hints = {}

    properties: Dict[str, Any] = {}
    required: List[str] = []
    for name, param in signature.parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        schema = _type_to_schema(hints.get(name, param.annotation))
        if param.default is inspect.Parameter.empty:
            required.append(name)
        elif param.default is not None:
            schema = dict(schema, default=param.default)
        properties[name] = schema

    parameters: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        parameters["required"] = required
    return parameters


def _first_paragraph(doc: Optional[str]) -> str:
    if not doc:
        return ""
    return inspect.cleandoc(doc).split("\n\n", 1)[0].replace("\n", " ").strip()


@dataclass
class Tool:
    """A backend function exposed to the model."""
    name: str
    description: str
    parameters: Dict[str, Any]
    function: Callable[..., Any]

    def to_schema(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ToolResult:
    """Outcome of one tool execution."""
    name: str
    arguments: Dict[str, Any]
    output: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_content(self) -> str:
        """Text sent back to the model in the tool message."""
        if self.error is not None:
            return json.dumps({"error": self.error})
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, default=str)


class ToolRegistry:
    """Ordered collection of tools available to an agent."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(
        self,
        func: Optional[Callable] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None
    ):
        """
        Register a function as a tool. Works as ``register(fn)``,
        ``@register`` or ``@register(name=...)``.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        def decorator(fn: Callable) -> Callable:
            tool_name = name or fn.__name__
            if tool_name in self._tools:
                raise ValueError(f"Tool '{tool_name}' is already registered")
            self._tools[tool_name] = Tool(
                name=tool_name,
                description=description or _first_paragraph(fn.__doc__),
                parameters=parameters or infer_parameters(fn),
                function=fn,
            )
            return fn

        if func is not None:
            return decorator(func)
        return decorator

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise KeyError(f"Unknown tool '{name}'. Available: {', '.join(self._tools)}") from None

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self, names: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Tool list for the chat API, in registration order."""
        selected = self._tools.values() if names is None else [self.get(n) for n in names]
        return [tool.to_schema() for tool in selected]

    def execute(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        arguments = dict(arguments or {})

        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Model requested unknown tool '%s'", name)
            return ToolResult(name, arguments, error=f"Unknown tool '{name}'")

        try:
            inspect.signature(tool.function).bind(**arguments)
        except TypeError as e:
            logger.warning("Bad arguments for tool '%s': %s", name, e)
            return ToolResult(name, arguments, error=f"Invalid arguments for '{name}': {e}")

        try:
            output = tool.function(**arguments)
        except Exception as e:
            logger.exception("Tool '%s' failed", name)
            return ToolResult(name, arguments, error=f"{type(e).__name__}: {e}")

        logger.debug("Tool '%s' succeeded", name)
        return ToolResult(name, arguments, output=output)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))
