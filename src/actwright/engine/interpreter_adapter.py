"""
Action Interpreter Adapter - Instruction + indexed tree -> validated proposal.

Sends the request to the interpreter collaborator and performs local
validation only: the method must be in the fixed enumeration, the arguments
must match the method's arity, `press` must name a known key and a scroll
percentage must not exceed 100. A failed check raises InvalidProposal
carrying the offending payload; it is never retried.
"""

import logging
import re
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from actwright.engine.keys import canonical_key
from actwright.engine.llm.schemas import METHOD_ARITY, ActionMethod, ActionProposal
from actwright.engine.tree_indexer import IndexedSnapshot
from actwright.exceptions import InvalidProposal
from actwright.interfaces.interpreter import IInterpreter, InterpretRequest

logger = logging.getLogger(__name__)

# Methods whose single argument must not be blank
_NON_BLANK_ARGUMENT = {ActionMethod.SELECT_OPTION, ActionMethod.SCROLL, ActionMethod.PRESS}

_PERCENTAGE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*%?\s*$")


def parse_percentage(argument: str) -> Optional[float]:
    """'50%' or '50' -> 50.0; anything else -> None."""
    match = _PERCENTAGE.match(argument)
    return float(match.group(1)) if match else None


def validate_proposal(payload: Any) -> ActionProposal:
    """
    Validate untrusted action data and build an ActionProposal.

    Accepts a mapping (camelCase or snake_case keys) or an existing
    ActionProposal, which is re-checked against the arity table.

    Raises:
        InvalidProposal: If any check fails
    """
    if isinstance(payload, ActionProposal):
        payload = payload.to_payload()
    if not isinstance(payload, Mapping):
        raise InvalidProposal(f"Proposal must be an object, got {type(payload).__name__}", payload)

    raw_method = payload.get("method")
    try:
        method = ActionMethod(raw_method)
    except ValueError:
        raise InvalidProposal(f"Unknown method {raw_method!r}", payload)

    arguments = payload.get("arguments", [])
    if arguments is None:
        arguments = []
    if isinstance(arguments, (str, bytes)) or not isinstance(arguments, Sequence):
        raise InvalidProposal("Arguments must be a list of strings", payload)
    if not all(isinstance(arg, str) for arg in arguments):
        raise InvalidProposal("Arguments must be a list of strings", payload)

    expected = METHOD_ARITY[method]
    if len(arguments) != expected:
        raise InvalidProposal(
            f"{method.value} takes {expected} argument(s), got {len(arguments)}",
            payload,
        )
    if method in _NON_BLANK_ARGUMENT and not arguments[0].strip():
        raise InvalidProposal(f"{method.value} argument must not be blank", payload)
    if method == ActionMethod.PRESS and canonical_key(arguments[0]) is None:
        raise InvalidProposal(f"Unknown key name {arguments[0]!r}", payload)
    if method == ActionMethod.SCROLL:
        percentage = parse_percentage(arguments[0])
        if percentage is not None and percentage > 100:
            raise InvalidProposal(f"Scroll percentage {arguments[0]!r} is above 100%", payload)

    try:
        return ActionProposal.model_validate(
            {**payload, "method": method, "arguments": tuple(arguments)}
        )
    except ValidationError as e:
        raise InvalidProposal(f"Malformed proposal: {e.errors()[0]['msg']}", payload)


def _stamp(proposal: ActionProposal, snapshot: IndexedSnapshot) -> ActionProposal:
    """Tie a proposal to the snapshot its node id was chosen from."""
    return proposal.model_copy(update={"snapshot_version": snapshot.version})


class ActionInterpreterAdapter:
    """
    Wraps the interpreter collaborator with local validation.

    Usage:
        adapter = ActionInterpreterAdapter(interpreter)
        proposal = await adapter.propose("Click the login button", snapshot)
    """

    def __init__(self, interpreter: IInterpreter, max_tree_lines: int = 400):
        self._interpreter = interpreter
        self._max_tree_lines = max_tree_lines
        self._calls = 0

    @property
    def call_count(self) -> int:
        """Number of outbound interpreter calls made so far."""
        return self._calls

    def build_request(
        self,
        instruction: str,
        snapshot: IndexedSnapshot,
        url: Optional[str] = None,
    ) -> InterpretRequest:
        return InterpretRequest(
            instruction=instruction,
            tree=snapshot.to_prompt_context(self._max_tree_lines),
            url=url,
        )

    async def propose(
        self,
        instruction: str,
        snapshot: IndexedSnapshot,
        url: Optional[str] = None,
    ) -> ActionProposal:
        """
        Ask for exactly one action and validate it.

        Raises:
            InvalidProposal: If the response is not exactly one valid action
        """
        self._calls += 1
        raw = await self._interpreter.propose(self.build_request(instruction, snapshot, url))

        if isinstance(raw, list):
            if len(raw) != 1:
                raise InvalidProposal(f"Expected exactly one action, got {len(raw)}", raw)
            raw = raw[0]

        try:
            proposal = _stamp(validate_proposal(raw), snapshot)
        except InvalidProposal as e:
            logger.warning(f"Interpreter returned an invalid proposal for {instruction!r}: {e.message}")
            raise
        logger.debug(f"Proposal for {instruction!r}: {proposal}")
        return proposal

    async def observe(
        self,
        instruction: str,
        snapshot: IndexedSnapshot,
        url: Optional[str] = None,
    ) -> List[ActionProposal]:
        """
        Ask for candidate actions, best first, and validate every one.

        Raises:
            InvalidProposal: If the response is not a list or any entry is invalid
        """
        self._calls += 1
        raw = await self._interpreter.observe(self.build_request(instruction, snapshot, url))

        if not isinstance(raw, list):
            raise InvalidProposal("Observation must be a list of actions", raw)

        proposals = []
        for entry in raw:
            try:
                proposals.append(_stamp(validate_proposal(entry), snapshot))
            except InvalidProposal as e:
                logger.warning(f"Interpreter returned an invalid candidate for {instruction!r}: {e.message}")
                raise
        return proposals
