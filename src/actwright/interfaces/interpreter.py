"""
Interpreter Interface - The language-understanding collaborator.

The interpreter maps an instruction plus an indexed tree summary to action
proposals or extracted data. Whatever it returns is treated as untrusted
wire data and validated locally before use.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class InterpretRequest:
    """
    Request sent to the interpreter.
    
    Attributes:
        instruction: Natural language instruction
        tree: Indexed tree summary (`[nodeId] role: name` lines)
        url: Current page URL, if known
    """
    instruction: str
    tree: str
    url: Optional[str] = None


@dataclass
class ExtractRequest(InterpretRequest):
    """Extraction request; `schema` is the JSON schema the data must follow."""
    schema: Dict[str, Any] = field(default_factory=dict)


class IInterpreter(ABC):
    """
    Abstract interface for the interpreter collaborator.
    
    Each method returns raw, unvalidated data.
    """

    @abstractmethod
    async def propose(self, request: InterpretRequest) -> Any:
        """
        Propose exactly one action.
        
        Returns:
            A raw `{targetNodeId, description, method, arguments}` mapping
        """
        ...

    @abstractmethod
    async def observe(self, request: InterpretRequest) -> Any:
        """
        List candidate actions, best first.
        
        Returns:
            A raw list of action mappings
        """
        ...

    @abstractmethod
    async def extract(self, request: ExtractRequest) -> Any:
        """
        Produce data conforming to `request.schema`.
        
        Returns:
            The raw extracted value
        """
        ...
