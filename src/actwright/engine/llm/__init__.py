"""
LLM-backed interpreter: action schemas, prompts and the interpreter itself.
"""

from actwright.engine.llm.schemas import (
    ActionMethod,
    ActionProposal,
    METHOD_ARITY,
    get_act_schema,
    get_observe_schema,
    get_extract_schema,
    parse_json_response,
)
from actwright.engine.llm.prompts import PromptBuilder
from actwright.engine.llm.interpreter import LLMInterpreter

__all__ = [
    "ActionMethod",
    "ActionProposal",
    "METHOD_ARITY",
    "get_act_schema",
    "get_observe_schema",
    "get_extract_schema",
    "parse_json_response",
    "PromptBuilder",
    "LLMInterpreter",
]
