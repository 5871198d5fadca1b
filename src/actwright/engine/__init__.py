"""
Engine Module - The instruction-to-action pipeline.

    instruction -> TreeIndexer -> ActionInterpreterAdapter -> (ObservationCache)
                -> LocatorResolver -> ActionExecutor -> side effect on the page

Session ties the components together behind act / observe / extract.
"""

from actwright.engine.tree_indexer import TreeIndexer, IndexedSnapshot, AccessibilityNode
from actwright.engine.locator_resolver import LocatorResolver, ResolvedLocator, LocatorStep
from actwright.engine.interpreter_adapter import ActionInterpreterAdapter, validate_proposal
from actwright.engine.observation_cache import ObservationCache, CacheEntry, compute_fingerprint
from actwright.engine.action_executor import (
    ActionExecutor,
    ActionOutcome,
    ActionState,
    FailureKind,
)
from actwright.engine.extraction import ExtractionCoordinator, ExtractionSchema, FieldSpec
from actwright.engine.session import Session, ObservedAction
from actwright.engine.llm import ActionMethod, ActionProposal, LLMInterpreter

__all__ = [
    # Indexing and resolution
    "TreeIndexer",
    "IndexedSnapshot",
    "AccessibilityNode",
    "LocatorResolver",
    "ResolvedLocator",
    "LocatorStep",
    # Proposals
    "ActionMethod",
    "ActionProposal",
    "ActionInterpreterAdapter",
    "validate_proposal",
    "LLMInterpreter",
    # Cache
    "ObservationCache",
    "CacheEntry",
    "compute_fingerprint",
    # Execution
    "ActionExecutor",
    "ActionOutcome",
    "ActionState",
    "FailureKind",
    # Extraction
    "ExtractionCoordinator",
    "ExtractionSchema",
    "FieldSpec",
    # Caller surface
    "Session",
    "ObservedAction",
]
