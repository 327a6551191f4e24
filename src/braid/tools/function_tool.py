"""Tools backed by plain Python functions.

The function's signature is turned into a pydantic model, which validates the arguments predicted by the model and
provides the JSON schema of the tool's declaration. A parameter named `tool_context` is not declared; the current
`ToolContext` is passed to it instead.

Example:
    ```python
    @tool
    def get_weather(city: str, unit: str = "celsius") -> dict:
        '''Return the weather for a city.'''
        return {"city": city, "temperature": 21, "unit": unit}
    ```
"""

import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Union, overload

from pydantic import BaseModel, create_model
from typing_extensions import override

from .base_tool import BaseTool

if TYPE_CHECKING:
    from .tool_context import ToolContext

logger = logging.getLogger(__name__)

TOOL_CONTEXT_PARAMETER = "tool_context"


def _create_input_model(tool_name: str, func: Callable[..., Any]) -> type[BaseModel]:
    fields: dict[str, Any] = {}
    for param_name, param in inspect.signature(func).parameters.items():
        if param_name in (TOOL_CONTEXT_PARAMETER, "self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = Any if param.annotation is inspect.Parameter.empty else param.annotation
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param_name] = (annotation, default)

    return create_model(f"_{tool_name}_Args", **fields)


class FunctionTool(BaseTool):
    """A tool that calls a sync or async Python function."""

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_long_running: bool = False,
    ) -> None:
        """Initialize the tool.

        Args:
            func: The function to call.
            name: Name of the tool. Defaults to the function's name.
            description: Description of the tool. Defaults to the function's docstring.
            is_long_running: Whether the tool completes out of band.
        """
        name = name or func.__name__
        super().__init__(
            name=name,
            description=description if description is not None else (inspect.getdoc(func) or ""),
            is_long_running=is_long_running,
        )
        self.func = func
        self._accepts_tool_context = TOOL_CONTEXT_PARAMETER in inspect.signature(func).parameters
        self._input_model = _create_input_model(name, func)

    @override
    def _get_declaration(self) -> Optional[dict[str, Any]]:
        schema = self._input_model.model_json_schema()
        parameters: dict[str, Any] = {
            "type": "object",
            "properties": schema.get("properties", {}),
            "required": schema.get("required", []),
        }
        if "$defs" in schema:
            parameters["$defs"] = schema["$defs"]

        return {"name": self.name, "description": self.description, "parameters": parameters}

    @override
    async def run_async(self, *, args: dict[str, Any], tool_context: "ToolContext") -> Any:
        validated = self._input_model.model_validate(args)
        kwargs = {field_name: getattr(validated, field_name) for field_name in type(validated).model_fields}
        if self._accepts_tool_context:
            kwargs[TOOL_CONTEXT_PARAMETER] = tool_context

        logger.debug("tool_name=<%s> | calling function", self.name)
        result = self.func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


@overload
def tool(func: Callable[..., Any]) -> FunctionTool: ...


@overload
def tool(
    *, name: Optional[str] = None, description: Optional[str] = None, is_long_running: bool = False
) -> Callable[[Callable[..., Any]], FunctionTool]: ...


def tool(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    is_long_running: bool = False,
) -> Union[FunctionTool, Callable[[Callable[..., Any]], FunctionTool]]:
    """Decorator that turns a function into a `FunctionTool`.

    Can be used bare (`@tool`) or with arguments (`@tool(name="lookup")`).
    """

    def decorator(f: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(f, name=name, description=description, is_long_running=is_long_running)

    if func is not None:
        return decorator(func)
    return decorator
