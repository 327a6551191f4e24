"""Tool that hands the conversation over to another agent."""

from .tool_context import ToolContext


def transfer_to_agent(agent_name: str, tool_context: ToolContext) -> None:
    """Transfer the question to another agent.

    Args:
        agent_name: Name of the agent to transfer to.
    """
    tool_context.actions.transfer_to_agent = agent_name
