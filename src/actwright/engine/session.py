"""
Session - The caller-facing surface: act, observe, extract.

One Session drives one page. Calls are sequential; the session does not
reorder or parallelize actions. Independent pages get independent sessions
(each with its own cache unless one is shared explicitly).

Example:
    >>> session = Session(PlaywrightDriver(page), LLMInterpreter(provider))
    >>> outcome = await session.act("Type 'Hello' in the message box")
    >>> outcome.success
    True
    >>> candidates = await session.observe("Find the login button")
    >>> await session.act(candidates[0])
    >>> await session.extract("Get the price", {"price": "string"})
    {'price': '19.99'}
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from actwright.config.settings import Settings
from actwright.engine.action_executor import ActionExecutor, ActionOutcome
from actwright.engine.extraction import ExtractionCoordinator, ExtractionSchema
from actwright.engine.interpreter_adapter import ActionInterpreterAdapter
from actwright.engine.llm.schemas import ActionProposal
from actwright.engine.locator_resolver import LocatorResolver, ResolvedLocator
from actwright.engine.observation_cache import ObservationCache
from actwright.engine.tree_indexer import IndexedSnapshot, TreeIndexer
from actwright.exceptions import InvalidProposal, UnresolvableNode
from actwright.interfaces.driver import IAutomationDriver
from actwright.interfaces.interpreter import IInterpreter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObservedAction:
    """A validated candidate action with the locator of its target."""
    proposal: ActionProposal
    locator: Optional[ResolvedLocator] = None

    @property
    def description(self) -> str:
        return self.proposal.description

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal": self.proposal.to_payload(),
            "locator": self.locator.to_dict() if self.locator else None,
        }


ActTarget = Union[str, ActionProposal, ObservedAction]


class Session:
    """
    Natural-language browser actions against a single page.

    `act` accepts an instruction, a previously returned ActionProposal or an
    ObservedAction. Only instructions reach the interpreter, and only when
    the observation cache has no entry for them.
    """

    def __init__(
        self,
        driver: IAutomationDriver,
        interpreter: IInterpreter,
        settings: Optional[Settings] = None,
        cache: Optional[ObservationCache] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            driver: Automation driver for the page
            interpreter: Interpreter collaborator
            settings: Settings (defaults apply if omitted)
            cache: Observation cache to use; built from settings when omitted
                and caching is enabled
            rng: Random source for keystroke delays
            sleep: Awaitable used for every deliberate wait
        """
        self._settings = settings or Settings()
        self._driver = driver

        self._indexer = TreeIndexer()
        self._resolver = LocatorResolver()
        self._adapter = ActionInterpreterAdapter(interpreter)
        self._extractor = ExtractionCoordinator(interpreter)
        self._executor = ActionExecutor(
            driver,
            resolver=self._resolver,
            settings=self._settings.executor,
            rng=rng,
            sleep=sleep,
        )

        cache_settings = self._settings.cache
        if cache is None and cache_settings.enabled:
            cache = ObservationCache(
                depth_bound=cache_settings.depth_bound,
                ttl_seconds=cache_settings.ttl_seconds,
                path=cache_settings.path,
            )
            if cache_settings.path:
                loaded = cache.load()
                logger.info(f"Loaded {loaded} cached action(s) from {cache_settings.path}")
        self._cache = cache

        self._last_snapshot: Optional[IndexedSnapshot] = None

    @property
    def cache(self) -> Optional[ObservationCache]:
        return self._cache

    @property
    def last_snapshot(self) -> Optional[IndexedSnapshot]:
        return self._last_snapshot

    @property
    def interpreter_calls(self) -> int:
        """Outbound interpreter calls made by this session."""
        return self._adapter.call_count + self._extractor.call_count

    async def snapshot(self) -> IndexedSnapshot:
        """Capture and index the page's accessibility tree."""
        raw_frames = await self._driver.capture_snapshot()
        self._last_snapshot = self._indexer.index_frames(raw_frames)
        logger.debug(f"Indexed {len(self._last_snapshot)} nodes (version {self._last_snapshot.version})")
        return self._last_snapshot

    # =========================================================================
    # ACT
    # =========================================================================

    async def act(
        self,
        target: ActTarget,
        timeout_ms: Optional[int] = None,
        use_cache: bool = True,
    ) -> ActionOutcome:
        """
        Perform one action.

        Args:
            target: Instruction, ActionProposal or ObservedAction
            timeout_ms: Deadline for the execution phase
            use_cache: Consult the cache for instructions (results are
                stored either way)

        Returns:
            ActionOutcome; execution failures do not raise

        Raises:
            InvalidSnapshot: If the captured snapshot is malformed
            InvalidProposal: If the interpreter answers with an invalid action
        """
        if isinstance(target, ObservedAction):
            return await self._act_on(target.proposal, target.locator, timeout_ms)
        if isinstance(target, ActionProposal):
            return await self._act_on(target, None, timeout_ms)
        return await self._act_instruction(target, timeout_ms, use_cache)

    async def _act_on(
        self,
        proposal: ActionProposal,
        locator: Optional[ResolvedLocator],
        timeout_ms: Optional[int],
    ) -> ActionOutcome:
        """Skip the interpreter: straight to resolution and execution."""
        try:
            proposal = self._executor.check(proposal)
        except InvalidProposal as e:
            logger.warning(f"Rejected action {proposal}: {e.message}")
            return ActionOutcome.rejected(proposal, e)

        snapshot = await self.snapshot()
        return await self._executor.execute(
            proposal,
            snapshot,
            locator=locator if proposal.method.targets_element else None,
            timeout_ms=timeout_ms,
        )

    async def _act_instruction(
        self,
        instruction: str,
        timeout_ms: Optional[int],
        use_cache: bool,
    ) -> ActionOutcome:
        snapshot = await self.snapshot()

        fingerprint = None
        if self._cache is not None:
            fingerprint = self._cache.fingerprint(instruction, snapshot)
            entry = self._cache.lookup(fingerprint) if use_cache else None
            if entry is not None:
                locator = entry.locator if entry.proposal.method.targets_element else None
                outcome = await self._executor.execute(
                    entry.proposal, snapshot, locator=locator, timeout_ms=timeout_ms
                )
                outcome.from_cache = True
                outcome.fingerprint = fingerprint
                return outcome

        proposal = await self._adapter.propose(instruction, snapshot)
        outcome = await self._executor.execute(proposal, snapshot, timeout_ms=timeout_ms)
        outcome.fingerprint = fingerprint

        if self._cache is not None and outcome.resolved:
            self._cache.store(fingerprint, proposal, outcome.locator)
        return outcome

    # =========================================================================
    # OBSERVE / EXTRACT
    # =========================================================================

    async def observe(self, instruction: str) -> List[ObservedAction]:
        """
        Candidate actions for an instruction, best first, each resolved
        against the current snapshot. Candidates whose target cannot be
        resolved are dropped.

        Raises:
            InvalidProposal: If any candidate is invalid
        """
        snapshot = await self.snapshot()
        proposals = await self._adapter.observe(instruction, snapshot)

        observed: List[ObservedAction] = []
        for proposal in proposals:
            locator = None
            if proposal.method.targets_element:
                try:
                    locator = self._resolver.resolve(proposal.target_node_id, snapshot)
                except UnresolvableNode as e:
                    logger.warning(f"Dropping candidate {proposal}: {e.message}")
                    continue
            observed.append(ObservedAction(proposal, locator))

        logger.debug(f"Observed {len(observed)} candidate(s) for {instruction!r}")
        return observed

    async def extract(
        self,
        instruction: str,
        schema: Union[ExtractionSchema, Mapping[str, Any]],
    ) -> Dict[str, Any]:
        """
        Structured data from the page, validated against `schema`.

        Raises:
            SchemaMismatch: If the data does not conform
        """
        snapshot = await self.snapshot()
        return await self._extractor.extract(instruction, snapshot, schema)

    # =========================================================================
    # HOUSEKEEPING
    # =========================================================================

    def save_cache(self) -> None:
        """Persist the cache if a cache path is configured."""
        if self._cache is not None and self._settings.cache.path:
            self._cache.save()

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics."""
        stats: Dict[str, Any] = {"interpreter_calls": self.interpreter_calls}
        if self._cache is not None:
            stats["cache"] = self._cache.get_stats()
        return stats

    def __repr__(self) -> str:
        return f"Session(driver={type(self._driver).__name__}, cache={self._cache is not None})"
