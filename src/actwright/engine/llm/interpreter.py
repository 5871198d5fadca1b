"""
LLM Interpreter - The interpreter collaborator backed by a language model.

Turns interpreter requests into prompts, calls the provider (function calling
when it is supported, plain JSON completion otherwise) and hands back the
parsed JSON untouched. Validation is the adapter's job, not this class's.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

from actwright.engine.llm.prompts import PromptBuilder
from actwright.engine.llm.schemas import (
    get_act_schema,
    get_extract_schema,
    get_observe_schema,
    parse_json_response,
)
from actwright.exceptions import InterpreterError
from actwright.interfaces.interpreter import ExtractRequest, IInterpreter, InterpretRequest
from actwright.interfaces.llm import ILLMProvider, Message, ToolDefinition

logger = logging.getLogger(__name__)


class LLMInterpreter(IInterpreter):
    """
    Interpreter that asks an LLM provider for actions and data.

    Example:
        >>> interpreter = LLMInterpreter(OpenAIProvider(base_url=..., model="gpt-4o"))
        >>> raw = await interpreter.propose(InterpretRequest("Click login", tree))
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        use_function_calling: bool = True,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
    ):
        """
        Args:
            llm_provider: LLM provider instance
            use_function_calling: Use function/tool calling if available
            temperature: Sampling temperature
            max_tokens: Maximum tokens per response
        """
        self._llm = llm_provider
        self._use_functions = use_function_calling and llm_provider.supports_tools
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._prompt_builder = PromptBuilder()

        self._total_calls = 0
        self._total_tokens = 0

    async def propose(self, request: InterpretRequest) -> Any:
        system, user = self._prompt_builder.build_act(request.instruction, request.tree, request.url)
        return await self._call_llm(system, user, get_act_schema())

    async def observe(self, request: InterpretRequest) -> Any:
        system, user = self._prompt_builder.build_observe(request.instruction, request.tree, request.url)
        parsed = await self._call_llm(system, user, get_observe_schema())
        if isinstance(parsed, dict) and "actions" in parsed:
            return parsed["actions"]
        return parsed

    async def extract(self, request: ExtractRequest) -> Any:
        system, user = self._prompt_builder.build_extract(
            request.instruction, request.tree, request.schema, request.url
        )
        parsed = await self._call_llm(system, user, get_extract_schema(request.schema))
        # Unwrap the {"data": ...} envelope; anything else is validated as-is
        if isinstance(parsed, dict) and set(parsed) == {"data"}:
            return parsed["data"]
        return parsed

    async def _call_llm(
        self,
        system: str,
        user: str,
        function_schema: Dict[str, Any],
    ) -> Any:
        """Make one LLM call and parse its JSON."""
        start_time = time.time()
        self._total_calls += 1

        messages = [Message.system(system), Message.user(user)]
        tools = None
        if self._use_functions:
            tools = [
                ToolDefinition(
                    name=function_schema["name"],
                    description=function_schema["description"],
                    parameters=function_schema["parameters"],
                )
            ]

        response = await self._llm.complete(
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            tools=tools,
        )

        tokens = response.usage.total_tokens if response.usage else 0
        self._total_tokens += tokens
        latency = (time.time() - start_time) * 1000
        logger.debug(f"Interpreter call took {latency:.0f}ms, {tokens} tokens")

        if response.tool_calls:
            arguments = response.tool_calls[0].arguments
            if isinstance(arguments, str):
                try:
                    return json.loads(arguments)
                except json.JSONDecodeError as e:
                    raise InterpreterError(
                        f"Tool call arguments are not JSON: {e}",
                        {"raw": arguments[:500]},
                    )
            return arguments

        return parse_json_response(response.content)

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics."""
        return {
            "total_calls": self._total_calls,
            "total_tokens": self._total_tokens,
        }
