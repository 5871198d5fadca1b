"""
Interfaces module - Contracts for the external collaborators.

- IAutomationDriver: primitive browser operations and live document queries
- IInterpreter: instruction + tree -> proposals or extracted data
- ILLMProvider: language model transport used by the LLM-backed interpreter
"""

from actwright.interfaces.driver import (
    IAutomationDriver,
    ElementState,
    OptionInfo,
    DriverCall,
    LiveElement,
)
from actwright.interfaces.interpreter import (
    IInterpreter,
    InterpretRequest,
    ExtractRequest,
)
from actwright.interfaces.llm import (
    ILLMProvider,
    Message,
    MessageRole,
    LLMResponse,
    ToolCall,
    ToolDefinition,
    Usage,
)

__all__ = [
    # Driver
    "IAutomationDriver",
    "ElementState",
    "OptionInfo",
    "DriverCall",
    "LiveElement",
    # Interpreter
    "IInterpreter",
    "InterpretRequest",
    "ExtractRequest",
    # LLM
    "ILLMProvider",
    "Message",
    "MessageRole",
    "LLMResponse",
    "ToolCall",
    "ToolDefinition",
    "Usage",
]
