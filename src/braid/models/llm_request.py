"""Model request type."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from ..types.content import Content

if TYPE_CHECKING:
    from ..tools.base_tool import BaseTool


@dataclass
class LlmRequest:
    """A request sent to a model.

    Attributes:
        model: Name of the model to call.
        contents: Conversation history sent to the model.
        config: Generation config. `system_instruction` holds the instructions and `tools` the function
            declarations.
        tools_dict: Tools available for this request, keyed by name.
    """

    model: Optional[str] = None
    contents: list[Content] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)
    tools_dict: dict[str, "BaseTool"] = field(default_factory=dict)

    def append_instructions(self, instructions: list[str]) -> None:
        """Append instructions to the system instruction, separated by blank lines."""
        instructions = [instruction for instruction in instructions if instruction]
        if not instructions:
            return
        existing = self.config.get("system_instruction")
        parts = ([existing] if existing else []) + instructions
        self.config["system_instruction"] = "\n\n".join(parts)

    def append_tools(self, tools: list["BaseTool"]) -> None:
        """Register tools and add their declarations to the request config."""
        declarations = self.config.setdefault("tools", [])
        for tool in tools:
            self.tools_dict[tool.name] = tool
            declaration = tool._get_declaration()
            if declaration:
                declarations.append(declaration)
