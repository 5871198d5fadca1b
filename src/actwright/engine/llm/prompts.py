"""
Prompt Templates - LLM prompts for the interpreter.

Design principles:
1. Reference nodes only by their [nodeId]
2. Request JSON output matching a fixed shape
3. One atomic action per act request
"""

import json
from typing import Any, Dict, Optional, Tuple

_METHODS_HELP = """METHODS (arguments are always strings):
- click: []
- hover: []
- fill: [text]            set the field's value in one step
- type: [text]            type the text key by key
- selectOption: [option]  visible text of the option to choose
- scroll: [target]        a percentage such as "50%", or a section such as "footer"
- press: [key]            a key name such as "Enter", "Tab", "Escape\""""

# =============================================================================
# ACT PROMPT
# =============================================================================

ACT_SYSTEM = f"""You are a browser automation assistant.

You are given an accessibility tree where every line starts with a node id in
brackets, e.g. `[0-12] button: Submit`. Pick the ONE node and method that
carries out the user's instruction.

{_METHODS_HELP}

OUTPUT FORMAT (JSON object):
```json
{{"targetNodeId": "0-12", "description": "Submit button of the login form", "method": "click", "arguments": []}}
```

RULES:
1. targetNodeId must be copied exactly from the tree
2. Return exactly one action
3. For scroll and press, target the node closest to the intent (or the root)"""

ACT_USER = """Instruction: {instruction}
{url_line}
Accessibility tree:
{tree}

Output ONLY valid JSON, no explanation."""

# =============================================================================
# OBSERVE PROMPT
# =============================================================================

OBSERVE_SYSTEM = f"""You are a browser automation assistant.

You are given an accessibility tree where every line starts with a node id in
brackets. List the actions on this page that match the user's instruction,
best match first.

{_METHODS_HELP}

OUTPUT FORMAT (JSON object):
```json
{{"actions": [
  {{"targetNodeId": "0-4", "description": "Search box in the header", "method": "fill", "arguments": ["laptops"]}},
  {{"targetNodeId": "0-5", "description": "Search button", "method": "click", "arguments": []}}
]}}
```

Return {{"actions": []}} if nothing matches."""

OBSERVE_USER = ACT_USER

# =============================================================================
# EXTRACT PROMPT
# =============================================================================

EXTRACT_SYSTEM = """You extract structured data from web pages.

You are given an accessibility tree and a JSON schema. Return the data that
answers the instruction, shaped exactly like the schema. Use the JSON types the
schema declares: strings stay strings, numbers are JSON numbers.

OUTPUT FORMAT (JSON object):
```json
{"data": { ... }}
```"""

EXTRACT_USER = """Instruction: {instruction}
{url_line}
Schema:
{schema}

Accessibility tree:
{tree}

Output ONLY valid JSON, no explanation."""


class PromptBuilder:
    """Builds (system, user) prompt pairs for each interpreter request."""

    @staticmethod
    def _url_line(url: Optional[str]) -> str:
        return f"Current URL: {url}\n" if url else ""

    def build_act(self, instruction: str, tree: str, url: Optional[str] = None) -> Tuple[str, str]:
        return ACT_SYSTEM, ACT_USER.format(
            instruction=instruction,
            url_line=self._url_line(url),
            tree=tree,
        )

    def build_observe(self, instruction: str, tree: str, url: Optional[str] = None) -> Tuple[str, str]:
        return OBSERVE_SYSTEM, OBSERVE_USER.format(
            instruction=instruction,
            url_line=self._url_line(url),
            tree=tree,
        )

    def build_extract(
        self,
        instruction: str,
        tree: str,
        schema: Dict[str, Any],
        url: Optional[str] = None,
    ) -> Tuple[str, str]:
        return EXTRACT_SYSTEM, EXTRACT_USER.format(
            instruction=instruction,
            url_line=self._url_line(url),
            schema=json.dumps(schema, indent=2),
            tree=tree,
        )

