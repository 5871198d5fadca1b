"""
Actwright - Natural-language browser actions over accessibility snapshots.

An instruction is turned into one structured action by an interpreter (an
LLM), resolved to a durable structural locator, and executed through an
automation driver. Repeated instructions on an unchanged page are served
from a cache without asking the interpreter again.

Example:
    >>> from actwright import Session
    >>> from actwright.browsers import PlaywrightDriver
    >>> session = Session(PlaywrightDriver(page), interpreter)
    >>> await session.act("Click the login button")
"""

__version__ = "0.1.0"

# Public API exports
from actwright.config.settings import Settings
from actwright.engine.session import Session, ObservedAction
from actwright.engine.action_executor import ActionOutcome, ActionState, FailureKind
from actwright.engine.llm.schemas import ActionMethod, ActionProposal
from actwright.engine.extraction import ExtractionSchema

__all__ = [
    "Session",
    "ObservedAction",
    "ActionOutcome",
    "ActionState",
    "FailureKind",
    "ActionMethod",
    "ActionProposal",
    "ExtractionSchema",
    "Settings",
    "__version__",
]
