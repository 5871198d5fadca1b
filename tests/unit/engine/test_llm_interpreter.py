"""
Tests for the LLM-backed interpreter.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from actwright.engine.llm.interpreter import LLMInterpreter
from actwright.exceptions import InterpreterError
from actwright.interfaces.interpreter import ExtractRequest, InterpretRequest
from actwright.interfaces.llm import LLMResponse, ToolCall, Usage


# =============================================================================
# MOCK CLASSES
# =============================================================================

def make_provider(response: LLMResponse, supports_tools: bool = True) -> MagicMock:
    provider = MagicMock()
    provider.supports_tools = supports_tools
    provider.complete = AsyncMock(return_value=response)
    return provider


def tool_response(arguments) -> LLMResponse:
    return LLMResponse(
        content="",
        tool_calls=[ToolCall(id="call_1", name="propose_action", arguments=json.dumps(arguments))],
        usage=Usage(prompt_tokens=90, completion_tokens=10, total_tokens=100),
    )


REQUEST = InterpretRequest(instruction="Click Send", tree="[0-4] button: Send")


class TestPropose:
    """Test action proposals."""

    @pytest.mark.asyncio
    async def test_uses_function_calling(self):
        action = {"targetNodeId": "0-4", "method": "click", "arguments": []}
        provider = make_provider(tool_response(action))

        result = await LLMInterpreter(provider).propose(REQUEST)

        assert result == action
        tools = provider.complete.call_args.kwargs["tools"]
        assert tools[0].name == "propose_action"

    @pytest.mark.asyncio
    async def test_plain_json_without_tools(self):
        provider = make_provider(LLMResponse(content='```json\n{"method": "click"}\n```'), supports_tools=False)

        result = await LLMInterpreter(provider).propose(REQUEST)

        assert result == {"method": "click"}
        assert provider.complete.call_args.kwargs["tools"] is None

    @pytest.mark.asyncio
    async def test_prompt_carries_instruction_and_tree(self):
        provider = make_provider(tool_response({}))

        await LLMInterpreter(provider).propose(REQUEST)

        messages = provider.complete.call_args.kwargs["messages"]
        assert "Click Send" in messages[1].content
        assert "[0-4] button: Send" in messages[1].content

    @pytest.mark.asyncio
    async def test_bad_tool_arguments(self):
        response = LLMResponse(content="", tool_calls=[ToolCall(id="1", name="propose_action", arguments="{not json")])

        with pytest.raises(InterpreterError):
            await LLMInterpreter(make_provider(response)).propose(REQUEST)

    @pytest.mark.asyncio
    async def test_stats(self):
        interpreter = LLMInterpreter(make_provider(tool_response({})))

        await interpreter.propose(REQUEST)
        await interpreter.propose(REQUEST)

        assert interpreter.get_stats() == {"total_calls": 2, "total_tokens": 200}


class TestObserveAndExtract:
    """Test envelope unwrapping."""

    @pytest.mark.asyncio
    async def test_observe_unwraps_actions(self):
        actions = [{"targetNodeId": "0-4", "method": "click", "arguments": []}]
        interpreter = LLMInterpreter(make_provider(tool_response({"actions": actions})))

        assert await interpreter.observe(REQUEST) == actions

    @pytest.mark.asyncio
    async def test_extract_unwraps_data(self):
        interpreter = LLMInterpreter(make_provider(tool_response({"data": {"price": "19.99"}})))
        request = ExtractRequest(instruction="Get the price", tree="", schema={"type": "object"})

        assert await interpreter.extract(request) == {"price": "19.99"}

    @pytest.mark.asyncio
    async def test_extract_passes_other_shapes_through(self):
        interpreter = LLMInterpreter(make_provider(tool_response({"price": "19.99"})))
        request = ExtractRequest(instruction="Get the price", tree="", schema={"type": "object"})

        assert await interpreter.extract(request) == {"price": "19.99"}
