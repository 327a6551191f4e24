from braid.models.llm_request import LlmRequest
from braid.tools.base_tool import BaseTool


class UndeclaredTool(BaseTool):
    def __init__(self):
        super().__init__(name="undeclared", description="No declaration.")

    async def run_async(self, *, args, tool_context):
        return None


class DeclaredTool(UndeclaredTool):
    def __init__(self):
        BaseTool.__init__(self, name="declared", description="Declared.")

    def _get_declaration(self):
        return {"name": self.name, "description": self.description}


def test_append_instructions():
    request = LlmRequest()

    request.append_instructions(["first"])
    request.append_instructions(["", "second", "third"])
    request.append_instructions([])

    assert request.config["system_instruction"] == "first\n\nsecond\n\nthird"


def test_append_tools():
    request = LlmRequest()
    undeclared = UndeclaredTool()
    declared = DeclaredTool()

    request.append_tools([undeclared, declared])

    assert request.tools_dict == {"undeclared": undeclared, "declared": declared}
    assert request.config["tools"] == [{"name": "declared", "description": "Declared."}]
