"""
OpenAI-compatible LLM Provider.

Talks to `/chat/completions` on any OpenAI-compatible endpoint (OpenAI,
Azure OpenAI, LM Studio, Ollama, ...). Function schemas are sent as tools
with `tool_choice` pinned to the first one, so the interpreter always gets
structured arguments back.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from actwright.exceptions import InterpreterError
from actwright.interfaces.llm import (
    ILLMProvider,
    LLMResponse,
    Message,
    ToolCall,
    ToolDefinition,
    Usage,
)

logger = logging.getLogger(__name__)


def _tool_payload(tool: ToolDefinition) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        },
    }


class OpenAIProvider(ILLMProvider):
    """
    OpenAI-compatible LLM provider over httpx.

    Example:
        >>> provider = OpenAIProvider(base_url="http://localhost:11434/v1", model="llama3.1")
        >>> response = await provider.complete([Message.user("Hello!")])
        >>> await provider.close()
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Base URL for the API, including the /v1 prefix
            model: Model to use for completions
            api_key: API key (falls back to OPENAI_API_KEY; local servers need none)
            timeout: Request timeout in seconds
            transport: httpx transport override (mock transports in tests)
        """
        self._model = model
        api_key = api_key or os.environ.get("OPENAI_API_KEY", "not-needed")
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return self._model

    @property
    def supports_tools(self) -> bool:
        return True

    async def complete(
        self,
        messages: List[Message],
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        tools: Optional[List[ToolDefinition]] = None,
    ) -> LLMResponse:
        body: Dict[str, Any] = {
            "model": self._model,
            "messages": [m.to_wire() for m in messages],
            "temperature": temperature,
        }
        if max_tokens:
            body["max_tokens"] = max_tokens
        if tools:
            body["tools"] = [_tool_payload(t) for t in tools]
            body["tool_choice"] = {"type": "function", "function": {"name": tools[0].name}}

        logger.debug(f"POST /chat/completions ({self._model}, {len(messages)} messages)")
        try:
            response = await self._client.post("/chat/completions", json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"LLM endpoint returned {e.response.status_code}")
            raise InterpreterError(
                f"LLM request failed with status {e.response.status_code}",
                {"body": e.response.text[:500]},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise InterpreterError(f"LLM request failed: {e}") from e

        return self._parse(data)

    def _parse(self, data: Any) -> LLMResponse:
        try:
            choice = data["choices"][0]
            message = choice["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise InterpreterError("Malformed completion response", {"response": data}) from e

        tool_calls = None
        if message.get("tool_calls"):
            tool_calls = [
                ToolCall(id=tc["id"], name=tc["function"]["name"], arguments=tc["function"]["arguments"])
                for tc in message["tool_calls"]
            ]

        usage = data.get("usage") or {}
        return LLMResponse(
            content=message.get("content") or "",
            model=data.get("model", self._model),
            usage=Usage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            ),
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason", "stop"),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
