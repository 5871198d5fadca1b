"""
Schemas - Structured action definitions exchanged with the interpreter.

Uses Pydantic for validation and JSON schema generation. The interpreter's
output is untrusted wire data: it only becomes an ActionProposal after
`interpreter_adapter.validate_proposal` has checked it.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from actwright.exceptions import InterpreterError


# =============================================================================
# ACTION PROPOSAL
# =============================================================================

class ActionMethod(str, Enum):
    """The closed set of methods an action may use."""
    CLICK = "click"
    FILL = "fill"
    TYPE = "type"
    SELECT_OPTION = "selectOption"
    SCROLL = "scroll"
    PRESS = "press"
    HOVER = "hover"

    @property
    def targets_element(self) -> bool:
        """Whether the method acts on the proposal's target node."""
        return self not in (ActionMethod.SCROLL, ActionMethod.PRESS)


# Number of arguments each method takes
METHOD_ARITY: Dict[ActionMethod, int] = {
    ActionMethod.CLICK: 0,
    ActionMethod.FILL: 1,
    ActionMethod.TYPE: 1,
    ActionMethod.SELECT_OPTION: 1,
    ActionMethod.SCROLL: 1,
    ActionMethod.PRESS: 1,
    ActionMethod.HOVER: 0,
}


class ActionProposal(BaseModel):
    """
    A single structured action.

    Attributes:
        target_node_id: Node id in the indexed snapshot
        description: Human-readable justification
        method: One of ActionMethod
        arguments: Method-specific string arguments
        snapshot_version: Version of the snapshot `target_node_id` refers to;
            set on every proposal the interpreter adapter returns
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    target_node_id: str = Field(alias="targetNodeId", min_length=1)
    description: str = ""
    method: ActionMethod
    arguments: Tuple[str, ...] = ()
    snapshot_version: Optional[str] = Field(default=None, alias="snapshotVersion")

    @property
    def argument(self) -> str:
        """The single argument of one-argument methods."""
        return self.arguments[0]

    def to_payload(self) -> Dict[str, Any]:
        """Wire/persistence form (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def __str__(self) -> str:
        args = ", ".join(repr(a) for a in self.arguments)
        return f"{self.method.value}({args}) on {self.target_node_id}"


# =============================================================================
# JSON SCHEMA GENERATION (for function calling)
# =============================================================================

def _proposal_item_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "targetNodeId": {"type": "string", "description": "Node id such as 0-12"},
            "description": {"type": "string"},
            "method": {"type": "string", "enum": [m.value for m in ActionMethod]},
            "arguments": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["targetNodeId", "method", "arguments"],
    }


def get_act_schema() -> Dict[str, Any]:
    """Get function schema for proposing a single action."""
    return {
        "name": "propose_action",
        "description": "Propose exactly one browser action for the instruction",
        "parameters": _proposal_item_schema(),
    }


def get_observe_schema() -> Dict[str, Any]:
    """Get function schema for listing candidate actions."""
    return {
        "name": "observe_actions",
        "description": "List candidate browser actions matching the instruction, best first",
        "parameters": {
            "type": "object",
            "properties": {
                "actions": {"type": "array", "items": _proposal_item_schema()},
            },
            "required": ["actions"],
        },
    }


def get_extract_schema(data_schema: Dict[str, Any]) -> Dict[str, Any]:
    """Get function schema for structured extraction."""
    return {
        "name": "extract_data",
        "description": "Return data from the page that answers the instruction",
        "parameters": {
            "type": "object",
            "properties": {"data": data_schema},
            "required": ["data"],
        },
    }


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def parse_json_response(text: str) -> Any:
    """
    Parse JSON out of an LLM text response.

    Handles bare JSON and markdown code blocks.

    Raises:
        InterpreterError: If the response is empty or not JSON
    """
    if not text or not text.strip():
        raise InterpreterError("Empty response from interpreter")

    json_text = text.strip()
    if "```json" in json_text:
        start = json_text.find("```json") + 7
        end = json_text.find("```", start)
        json_text = json_text[start:end].strip()
    elif "```" in json_text:
        start = json_text.find("```") + 3
        end = json_text.find("```", start)
        json_text = json_text[start:end].strip()

    try:
        return json.loads(json_text)
    except json.JSONDecodeError as e:
        raise InterpreterError(f"JSON parse error: {e}", {"raw": text[:500]})
