"""Agent driven by a language model.

Each step of an LlmAgent builds a request from the session history, calls the model, executes the function calls the
model predicts and yields the resulting events. Steps repeat until the model produces a final response.
"""

import asyncio
import copy
import inspect
import logging
import time
from typing import TYPE_CHECKING, Any, AsyncGenerator, Awaitable, Callable, Literal, Optional, Union

from typing_extensions import override

from ..events.event import Event
from ..models.base_llm import BaseLlm, BaseLlmConnection
from ..models.llm_request import LlmRequest
from ..models.llm_response import LlmResponse
from ..tools.base_tool import BaseTool
from ..tools.function_tool import FunctionTool
from ..tools.tool_context import ToolContext
from ..tools.transfer_to_agent_tool import transfer_to_agent
from ..types.content import Content, Part
from ..types.tools import REQUEST_CONFIRMATION_FUNCTION_CALL_NAME, REQUEST_CREDENTIAL_FUNCTION_CALL_NAME
from .base_agent import BaseAgent
from .callback_context import CallbackContext, ReadonlyContext
from .functions import (
    AfterToolCallback,
    BeforeToolCallback,
    generate_auth_event,
    generate_request_confirmation_event,
    get_long_running_function_calls,
    handle_function_calls_async,
    populate_client_function_call_id,
    remove_client_function_call_id,
)
from .instructions import inject_session_state
from .request_confirmation import resume_confirmed_function_calls
from .run_config import StreamingMode

if TYPE_CHECKING:
    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)

InstructionProvider = Callable[[ReadonlyContext], Union[str, Awaitable[str]]]
"""Builds the instruction from the current context."""

BeforeModelCallback = Callable[..., Union[Awaitable[Optional[LlmResponse]], Optional[LlmResponse]]]
"""Called with `callback_context` and `llm_request`. A returned response is used instead of calling the model."""

AfterModelCallback = Callable[..., Union[Awaitable[Optional[LlmResponse]], Optional[LlmResponse]]]
"""Called with `callback_context` and `llm_response`. A returned response replaces the model's."""

ToolUnion = Union[BaseTool, Callable[..., Any]]

_REQUEST_FUNCTION_NAMES = (REQUEST_CONFIRMATION_FUNCTION_CALL_NAME, REQUEST_CREDENTIAL_FUNCTION_CALL_NAME)
_TASK_COMPLETED_FUNCTION_NAME = "task_completed"


def _to_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class LlmAgent(BaseAgent):
    """An agent that calls a model and the tools the model asks for.

    Attributes:
        model: The model to call. Inherited from the nearest ancestor LlmAgent when not set.
        instruction: Instruction for the model, or a function of the context that returns it.
            Placeholders such as `{key}` in a string instruction are filled from session state.
        tools: Tools available to the model. Plain functions are wrapped in `FunctionTool`.
        output_key: State key the text of the final response is saved under.
        include_contents: "default" sends the session history; "none" sends only the current turn.
        disallow_transfer_to_parent: Prevents the model from transferring back to the parent agent.
        disallow_transfer_to_peers: Prevents the model from transferring to sibling agents.
    """

    def __init__(
        self,
        *,
        name: str,
        description: str = "",
        model: Optional[BaseLlm] = None,
        instruction: Union[str, InstructionProvider] = "",
        tools: Optional[list[ToolUnion]] = None,
        sub_agents: Optional[list[BaseAgent]] = None,
        before_agent_callback: Any = None,
        after_agent_callback: Any = None,
        before_model_callback: Union[None, BeforeModelCallback, list[BeforeModelCallback]] = None,
        after_model_callback: Union[None, AfterModelCallback, list[AfterModelCallback]] = None,
        before_tool_callback: Union[None, BeforeToolCallback, list[BeforeToolCallback]] = None,
        after_tool_callback: Union[None, AfterToolCallback, list[AfterToolCallback]] = None,
        output_key: Optional[str] = None,
        include_contents: Literal["default", "none"] = "default",
        disallow_transfer_to_parent: bool = False,
        disallow_transfer_to_peers: bool = False,
    ) -> None:
        """Initialize the agent.

        Args:
            name: Name of the agent.
            description: Description of the agent.
            model: The model to call.
            instruction: Instruction for the model, or a function of the context that returns it.
            tools: Tools available to the model.
            sub_agents: Agents this agent can transfer to.
            before_agent_callback: Callback or list of callbacks run before the agent.
            after_agent_callback: Callback or list of callbacks run after the agent.
            before_model_callback: Callback or list of callbacks run before each model call.
            after_model_callback: Callback or list of callbacks run after each model response.
            before_tool_callback: Callback or list of callbacks run before each tool call.
            after_tool_callback: Callback or list of callbacks run after each tool call.
            output_key: State key the text of the final response is saved under.
            include_contents: Which history to send to the model.
            disallow_transfer_to_parent: Prevents transfer back to the parent agent.
            disallow_transfer_to_peers: Prevents transfer to sibling agents.
        """
        super().__init__(
            name=name,
            description=description,
            sub_agents=sub_agents,
            before_agent_callback=before_agent_callback,
            after_agent_callback=after_agent_callback,
        )
        self.model = model
        self.instruction = instruction
        self.tools: list[ToolUnion] = list(tools or [])
        self.before_model_callback = before_model_callback
        self.after_model_callback = after_model_callback
        self.before_tool_callback = before_tool_callback
        self.after_tool_callback = after_tool_callback
        self.output_key = output_key
        self.include_contents = include_contents
        self.disallow_transfer_to_parent = disallow_transfer_to_parent
        self.disallow_transfer_to_peers = disallow_transfer_to_peers
        self.instruction_suffixes: list[str] = []

    @property
    def canonical_model(self) -> BaseLlm:
        """The model of this agent, or of its nearest ancestor LlmAgent.

        Raises:
            ValueError: If no model is found.
        """
        agent: Optional[BaseAgent] = self
        while agent is not None:
            if isinstance(agent, LlmAgent) and agent.model is not None:
                return agent.model
            agent = agent.parent_agent
        raise ValueError(f"agent_name=<{self.name}> | no model found")

    @property
    def canonical_before_model_callbacks(self) -> list[BeforeModelCallback]:
        """Before model callbacks as a list."""
        return _to_list(self.before_model_callback)

    @property
    def canonical_after_model_callbacks(self) -> list[AfterModelCallback]:
        """After model callbacks as a list."""
        return _to_list(self.after_model_callback)

    @property
    def canonical_before_tool_callbacks(self) -> list[BeforeToolCallback]:
        """Before tool callbacks as a list."""
        return _to_list(self.before_tool_callback)

    @property
    def canonical_after_tool_callbacks(self) -> list[AfterToolCallback]:
        """After tool callbacks as a list."""
        return _to_list(self.after_tool_callback)

    async def canonical_instruction(self, context: ReadonlyContext) -> str:
        """Resolve the instruction for the current context."""
        if isinstance(self.instruction, str):
            return self.instruction
        return await _maybe_await(self.instruction(context))

    async def canonical_tools(self, context: Optional["InvocationContext"] = None) -> list[BaseTool]:
        """The agent's tools, with plain functions wrapped in `FunctionTool`."""
        return [tool if isinstance(tool, BaseTool) else FunctionTool(tool) for tool in self.tools]

    @override
    async def _run_async_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        while True:
            last_event: Optional[Event] = None
            async for event in self._run_one_step_async(context):
                last_event = event
                self._maybe_save_output_to_state(event)
                yield event

            if last_event is None or last_event.is_final_response() or context.end_invocation:
                break
            if last_event.partial:
                logger.warning("agent_name=<%s> | last event is partial, stopping", self.name)
                break

    @override
    async def _run_live_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        llm_request = LlmRequest(model=self.canonical_model.model)
        await self._preprocess(context, llm_request)

        context.increment_llm_call_count()
        connection = await self.canonical_model.connect(llm_request)
        send_task: Optional[asyncio.Task[None]] = None
        try:
            if llm_request.contents:
                await connection.send_history(llm_request.contents)

            if context.live_request_queue is not None:
                send_task = asyncio.create_task(self._send_to_model(connection, context))

            try:
                async for llm_response in connection.receive():
                    model_response_event = Event(
                        invocation_id=context.invocation_id, author=self.name, branch=context.branch
                    )
                    done = False
                    async for event in self._postprocess_live(
                        context, llm_request, llm_response, model_response_event, connection
                    ):
                        yield event
                        if any(
                            response.get("name") == _TASK_COMPLETED_FUNCTION_NAME
                            for response in event.get_function_responses()
                        ):
                            done = True
                    if done or context.end_invocation:
                        return
            finally:
                if send_task is not None:
                    send_task.cancel()
                    await asyncio.gather(send_task, return_exceptions=True)
        finally:
            # A sender that finished normally has already closed the connection
            if send_task is None or not send_task.done() or send_task.cancelled() or send_task.exception():
                await connection.close()

    async def _send_to_model(self, connection: BaseLlmConnection, context: "InvocationContext") -> None:
        """Forward live requests to the connection, closing it when the queue is closed."""
        assert context.live_request_queue is not None
        while True:
            live_request = await context.live_request_queue.get()
            if live_request.close:
                await connection.close()
                return
            if live_request.activity_start:
                await connection.send_activity_start()
            elif live_request.activity_end:
                await connection.send_activity_end()
            elif live_request.blob is not None:
                await connection.send_realtime(live_request.blob)
            elif live_request.content is not None:
                await connection.send_content(live_request.content)

    async def _run_one_step_async(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        async for event in resume_confirmed_function_calls(context, self):
            yield event
        if context.end_invocation:
            return

        llm_request = LlmRequest(model=self.canonical_model.model)
        await self._preprocess(context, llm_request)
        if context.end_invocation:
            return

        model_response_event = Event(invocation_id=context.invocation_id, author=self.name, branch=context.branch)
        async for llm_response in self._call_llm_async(context, llm_request, model_response_event):
            async for event in self._postprocess(context, llm_request, llm_response, model_response_event):
                model_response_event.id = Event.new_id()
                yield event

    async def _preprocess(self, context: "InvocationContext", llm_request: LlmRequest) -> None:
        readonly_context = ReadonlyContext(context)
        instruction = await self.canonical_instruction(readonly_context)
        if isinstance(self.instruction, str):
            instruction = await inject_session_state(instruction, readonly_context)
        llm_request.append_instructions([instruction, *self.instruction_suffixes])

        tools = await self.canonical_tools(context)
        transfer_targets = self._get_transfer_targets()
        if transfer_targets:
            llm_request.append_instructions([self._build_transfer_instruction(transfer_targets)])
            tools.append(FunctionTool(transfer_to_agent))

        llm_request.contents = self._build_contents(context)

        tool_context = ToolContext(context)
        for tool in tools:
            await tool.process_llm_request(tool_context=tool_context, llm_request=llm_request)

    async def _call_llm_async(
        self, context: "InvocationContext", llm_request: LlmRequest, model_response_event: Event
    ) -> AsyncGenerator[LlmResponse, None]:
        callback_context = CallbackContext(context, event_actions=model_response_event.actions)

        response = await context.plugin_manager.run_before_model_callback(
            callback_context=callback_context, llm_request=llm_request
        )
        if response is None:
            for callback in self.canonical_before_model_callbacks:
                response = await _maybe_await(callback(callback_context=callback_context, llm_request=llm_request))
                if response is not None:
                    break
        if response is not None:
            yield response
            return

        context.increment_llm_call_count()
        stream = context.run_config.streaming_mode == StreamingMode.SSE
        responses = self.canonical_model.generate_content_async(llm_request, stream=stream)

        async for llm_response in self._run_and_handle_error(responses, callback_context, llm_request):
            altered = await context.plugin_manager.run_after_model_callback(
                callback_context=callback_context, llm_response=llm_response
            )
            if altered is None:
                for callback in self.canonical_after_model_callbacks:
                    altered = await _maybe_await(callback(callback_context=callback_context, llm_response=llm_response))
                    if altered is not None:
                        break
            yield altered if altered is not None else llm_response

    async def _run_and_handle_error(
        self,
        responses: AsyncGenerator[LlmResponse, None],
        callback_context: CallbackContext,
        llm_request: LlmRequest,
    ) -> AsyncGenerator[LlmResponse, None]:
        try:
            async for llm_response in responses:
                yield llm_response
        except Exception as model_error:
            logger.debug("agent_name=<%s>, error=<%s> | model call failed", self.name, model_error)
            response = await callback_context.invocation_context.plugin_manager.run_on_model_error_callback(
                callback_context=callback_context, llm_request=llm_request, error=model_error
            )
            if response is None:
                code = getattr(model_error, "code", None)
                response = LlmResponse(
                    error_code=str(code) if code is not None else type(model_error).__name__,
                    error_message=str(model_error),
                )
            yield response

    async def _postprocess(
        self,
        context: "InvocationContext",
        llm_request: LlmRequest,
        llm_response: LlmResponse,
        model_response_event: Event,
    ) -> AsyncGenerator[Event, None]:
        if not llm_response.content and not llm_response.error_code and not llm_response.interrupted:
            return

        event = self._finalize_model_response_event(llm_request, llm_response, model_response_event)
        yield event

        if event.partial or not event.get_function_calls():
            return

        function_response_event = await handle_function_calls_async(
            context,
            event,
            llm_request.tools_dict,
            self.canonical_before_tool_callbacks,
            self.canonical_after_tool_callbacks,
        )
        if function_response_event is None:
            return

        yield function_response_event

        auth_event = generate_auth_event(context, function_response_event)
        if auth_event is not None:
            yield auth_event

        confirmation_event = generate_request_confirmation_event(context, event, function_response_event)
        if confirmation_event is not None:
            yield confirmation_event

        transfer_to = function_response_event.actions.transfer_to_agent
        if transfer_to:
            agent_to_run = self._get_agent_to_run(transfer_to)
            async for transferred_event in agent_to_run.run_async(context):
                yield transferred_event

    async def _postprocess_live(
        self,
        context: "InvocationContext",
        llm_request: LlmRequest,
        llm_response: LlmResponse,
        model_response_event: Event,
        connection: BaseLlmConnection,
    ) -> AsyncGenerator[Event, None]:
        if (
            not llm_response.content
            and not llm_response.error_code
            and not llm_response.interrupted
            and not llm_response.turn_complete
        ):
            return

        event = self._finalize_model_response_event(llm_request, llm_response, model_response_event)
        yield event

        if not event.get_function_calls():
            return

        function_response_event = await handle_function_calls_async(
            context,
            event,
            llm_request.tools_dict,
            self.canonical_before_tool_callbacks,
            self.canonical_after_tool_callbacks,
        )
        if function_response_event is None:
            return

        if function_response_event.content:
            await connection.send_content(function_response_event.content)
        yield function_response_event

        transfer_to = function_response_event.actions.transfer_to_agent
        if transfer_to:
            agent_to_run = self._get_agent_to_run(transfer_to)
            async for transferred_event in agent_to_run.run_live(context):
                yield transferred_event

    def _finalize_model_response_event(
        self, llm_request: LlmRequest, llm_response: LlmResponse, model_response_event: Event
    ) -> Event:
        event = Event.model_validate(
            {**model_response_event.model_dump(), **llm_response.model_dump(exclude_none=True)}
        )
        # Stamped when the response arrives, not when the model was called
        event.timestamp = time.time()

        function_calls = event.get_function_calls()
        if function_calls:
            populate_client_function_call_id(event)
            event.long_running_tool_ids = get_long_running_function_calls(function_calls, llm_request.tools_dict)

        return event

    def _maybe_save_output_to_state(self, event: Event) -> None:
        if not self.output_key or event.author != self.name or not event.is_final_response():
            return
        text = event.get_text()
        if text:
            event.actions.state_delta[self.output_key] = text

    def _get_agent_to_run(self, agent_name: str) -> BaseAgent:
        agent_to_run = self.root_agent.find_agent(agent_name)
        if agent_to_run is None:
            raise ValueError(f"agent_name=<{agent_name}> | agent not found in the agent tree")
        return agent_to_run

    def _get_transfer_targets(self) -> list[BaseAgent]:
        targets = list(self.sub_agents)

        parent = self.parent_agent
        if parent is None or not isinstance(parent, LlmAgent):
            return targets

        if not self.disallow_transfer_to_parent:
            targets.append(parent)
        if not self.disallow_transfer_to_peers:
            targets.extend(peer for peer in parent.sub_agents if peer.name != self.name)
        return targets

    def _build_transfer_instruction(self, targets: list[BaseAgent]) -> str:
        agent_lines = "\n".join(
            f"Agent name: {target.name}\nAgent description: {target.description}\n" for target in targets
        )
        instruction = (
            f"You have a list of other agents to transfer to:\n\n{agent_lines}\n"
            "If you are the best to answer the question according to your description, you can answer it.\n\n"
            "If another agent is better for answering the question according to its description, call "
            f"`{transfer_to_agent.__name__}` function to transfer the question to that agent. When transferring, "
            "do not generate any text other than the function call.\n"
        )
        if self.parent_agent is not None and not self.disallow_transfer_to_parent:
            instruction += (
                f"\nYour parent agent is {self.parent_agent.name}. If neither the other agents nor you are best for "
                "answering the question according to the descriptions, transfer to your parent agent.\n"
            )
        return instruction

    def _build_contents(self, context: "InvocationContext") -> list[Content]:
        """Build the conversation history sent to the model.

        Only events visible from the current branch are included. Confirmation and credential requests are
        internal to the client round trip and are left out, as are function responses superseded by a later
        response to the same call. Messages of other agents are presented as context from the user.
        """
        events = [
            event
            for event in context.session.events
            if event.content and not event.partial and _is_event_in_branch(context.branch, event)
        ]

        if self.include_contents == "none":
            user_indexes = [index for index, event in enumerate(events) if event.author == "user"]
            if user_indexes:
                events = events[user_indexes[-1] :]

        latest_response_index: dict[str, int] = {}
        for index, event in enumerate(events):
            for function_response in event.get_function_responses():
                if function_response.get("id"):
                    latest_response_index[function_response["id"]] = index

        contents: list[Content] = []
        for index, event in enumerate(events):
            assert event.content is not None
            parts: list[Part] = []
            for part in event.content.get("parts", []):
                function_call = part.get("function_call")
                if function_call and function_call.get("name") in _REQUEST_FUNCTION_NAMES:
                    continue
                function_response = part.get("function_response")
                if function_response:
                    if function_response.get("name") in _REQUEST_FUNCTION_NAMES:
                        continue
                    if latest_response_index.get(function_response.get("id", ""), index) != index:
                        continue
                parts.append(copy.deepcopy(part))

            if not parts:
                continue

            content: Content = {"role": event.content.get("role", "model"), "parts": parts}
            if event.author not in ("user", self.name):
                content = _present_other_agent_message(event.author, parts)
            remove_client_function_call_id(content)
            contents.append(content)

        return contents


def _is_event_in_branch(branch: Optional[str], event: Event) -> bool:
    if not branch or not event.branch:
        return True
    return branch == event.branch or branch.startswith(f"{event.branch}.")


def _present_other_agent_message(author: str, parts: list[Part]) -> Content:
    presented: list[Part] = [{"text": "For context:"}]
    for part in parts:
        if part.get("thought"):
            continue
        if "text" in part:
            presented.append({"text": f"[{author}] said: {part['text']}"})
        elif "function_call" in part:
            function_call = part["function_call"]
            presented.append(
                {
                    "text": f"[{author}] called tool `{function_call.get('name')}` with parameters: "
                    f"{function_call.get('args')}"
                }
            )
        elif "function_response" in part:
            function_response = part["function_response"]
            presented.append(
                {
                    "text": f"[{author}] `{function_response.get('name')}` tool returned result: "
                    f"{function_response.get('response')}"
                }
            )
    return {"role": "user", "parts": presented}
