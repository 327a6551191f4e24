import asyncio
from typing import AsyncGenerator, Optional, Union

from braid.models.base_llm import BaseLlm, BaseLlmConnection
from braid.models.llm_request import LlmRequest
from braid.models.llm_response import LlmResponse
from braid.types.content import Blob, Content

ScriptedResponse = Union[LlmResponse, Exception, list[LlmResponse]]


def text_response(text: str) -> LlmResponse:
    return LlmResponse(content={"role": "model", "parts": [{"text": text}]})


def function_call_response(name: str, args: Optional[dict] = None, call_id: Optional[str] = None) -> LlmResponse:
    function_call = {"name": name, "args": args or {}}
    if call_id:
        function_call["id"] = call_id
    return LlmResponse(content={"role": "model", "parts": [{"function_call": function_call}]})


class MockLlm(BaseLlm):
    """Model that replays scripted responses, one script entry per call.

    An entry may be a single response, a list of responses yielded in order, or an exception raised from the call.
    With `wait_for_close`, a live connection keeps receiving until it is closed instead of ending with the script.
    `delay` is slept before every call.
    """

    def __init__(
        self,
        responses: list[ScriptedResponse],
        model: str = "mock-model",
        wait_for_close: bool = False,
        delay: float = 0.0,
    ):
        super().__init__(model)
        self.responses = list(responses)
        self.requests: list[LlmRequest] = []
        self.stream_flags: list[bool] = []
        self.connection: Optional["MockLlmConnection"] = None
        self.wait_for_close = wait_for_close
        self.delay = delay

    async def generate_content_async(
        self, llm_request: LlmRequest, stream: bool = False
    ) -> AsyncGenerator[LlmResponse, None]:
        self.requests.append(llm_request)
        self.stream_flags.append(stream)
        if self.delay:
            await asyncio.sleep(self.delay)

        if not self.responses:
            raise AssertionError("MockLlm called more times than scripted")

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, list):
            for item in response:
                yield item
        else:
            yield response

    async def connect(self, llm_request: LlmRequest) -> BaseLlmConnection:
        self.requests.append(llm_request)
        self.connection = MockLlmConnection(self.responses, wait_for_close=self.wait_for_close)
        return self.connection


class MockLlmConnection(BaseLlmConnection):
    """Live connection that replays scripted responses and records what it was sent."""

    def __init__(self, responses: list[ScriptedResponse], wait_for_close: bool = False):
        self.responses = responses
        self.wait_for_close = wait_for_close
        self._closed_event = asyncio.Event()
        self.history: list[Content] = []
        self.sent_contents: list[Content] = []
        self.sent_blobs: list[Blob] = []
        self.activity_signals: list[str] = []
        self.close_count = 0

    async def send_history(self, history: list[Content]) -> None:
        self.history = list(history)

    async def send_content(self, content: Content) -> None:
        self.sent_contents.append(content)

    async def send_realtime(self, blob: Blob) -> None:
        self.sent_blobs.append(blob)

    async def send_activity_start(self) -> None:
        self.activity_signals.append("start")

    async def send_activity_end(self) -> None:
        self.activity_signals.append("end")

    async def receive(self) -> AsyncGenerator[LlmResponse, None]:
        while self.responses:
            response = self.responses.pop(0)
            if isinstance(response, list):
                for item in response:
                    yield item
            else:
                yield response
        if self.wait_for_close:
            await self._closed_event.wait()

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    async def close(self) -> None:
        self.close_count += 1
        self._closed_event.set()
