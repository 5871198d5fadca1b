"""
LLM Provider Interface - The transport behind the LLM-backed interpreter.

A provider takes a system/user prompt pair, optionally with one forced
function schema, and returns the model's text or function-call arguments.
It knows nothing about actions or snapshots.

Example:
    >>> provider = OpenAIProvider(base_url="https://api.openai.com/v1", model="gpt-4o")
    >>> response = await provider.complete([Message.system(rules), Message.user(prompt)])
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MessageRole(Enum):
    """Role of a prompt message."""
    SYSTEM = "system"
    USER = "user"


@dataclass
class Message:
    """One prompt message."""
    role: MessageRole
    content: str

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class ToolDefinition:
    """
    A function schema the model is asked to call.

    Attributes:
        name: Function name, e.g. `propose_action`
        description: What the function is for
        parameters: JSON schema of the arguments
    """
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCall:
    """A function call in a response; `arguments` is raw JSON text."""
    id: str
    name: str
    arguments: str


@dataclass
class Usage:
    """Token counts reported for one completion."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    """
    Response from one completion request.

    Attributes:
        content: Text content (empty when the model only called a function)
        model: Model that produced the response
        usage: Token usage
        tool_calls: Function calls, if any
        finish_reason: 'stop', 'length' or 'tool_calls'
    """
    content: str
    model: str = ""
    usage: Usage = field(default_factory=Usage)
    tool_calls: Optional[List[ToolCall]] = None
    finish_reason: str = "stop"


class ILLMProvider(ABC):
    """
    Abstract interface for LLM providers.

    Implementations handle authentication, request formatting
    and response parsing for their endpoint.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'openai')."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        ...

    @property
    @abstractmethod
    def supports_tools(self) -> bool:
        """Whether function calling is supported."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        tools: Optional[List[ToolDefinition]] = None,
    ) -> LLMResponse:
        """
        Run one completion. When `tools` is given the first tool is forced.

        Raises:
            InterpreterError: If the request fails or the response is malformed
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...
