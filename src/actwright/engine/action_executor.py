"""
Action Executor - Drives one validated action to a side effect on the page.

Each action runs through a small state machine:

    PENDING -> RESOLVING -> READY -> EXECUTING -> SUCCEEDED
                    \\                     \\
                     +-------> FAILED <-----+

- RESOLVING turns the target into a live element. A stale path gets exactly
  one retry after a short wait (the element may not be painted yet); after
  that the action fails as STALE and the caller must re-observe.
  A proposal tied to a different snapshot version fails as UNRESOLVABLE
  (SnapshotMismatch) before anything is looked up.
- EXECUTING dispatches on the method. Interactive targets must be attached,
  visible, enabled and not moving before the primitive call. Nothing in
  EXECUTING is retried: primitives have side effects.

Failures never raise out of `execute`; they come back as an ActionOutcome
with a FailureKind and the typed exception.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from actwright.config.settings import ExecutorSettings
from actwright.engine.interpreter_adapter import parse_percentage, validate_proposal
from actwright.engine.keys import canonical_key
from actwright.engine.llm.schemas import ActionMethod, ActionProposal
from actwright.engine.locator_resolver import LocatorResolver, ResolvedLocator
from actwright.engine.tree_indexer import AccessibilityNode, IndexedSnapshot
from actwright.exceptions import (
    ActionTimeout,
    ActwrightError,
    DriverError,
    InvalidProposal,
    OptionNotFound,
    StaleLocator,
    UnresolvableNode,
)
from actwright.interfaces.driver import ElementState, IAutomationDriver, LiveElement
from actwright.utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

# Section words that name a landmark role rather than an accessible name
LANDMARK_SYNONYMS = {
    "footer": "contentinfo",
    "bottom": "contentinfo",
    "header": "banner",
    "top": "banner",
    "nav": "navigation",
    "menu": "navigation",
    "sidebar": "complementary",
    "aside": "complementary",
    "content": "main",
}


class ActionState(str, Enum):
    """States of the per-action state machine."""
    PENDING = "pending"
    RESOLVING = "resolving"
    READY = "ready"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why an action ended in FAILED."""
    STALE = "stale"
    UNRESOLVABLE = "unresolvable"
    INVALID_PROPOSAL = "invalid_proposal"
    OPTION_NOT_FOUND = "option_not_found"
    TIMEOUT = "timeout"
    DRIVER_ERROR = "driver_error"


@dataclass
class ActionOutcome:
    """
    Result of executing one action.

    Attributes:
        proposal: The action that was executed
        state: Final state (SUCCEEDED or FAILED)
        failure: Failure kind when FAILED
        error: The typed exception behind the failure
        locator: Locator of the element acted on, if any
        history: Every state the action went through, in order
        keystroke_delays_ms: Delays slept between keystrokes (type only)
        from_cache: Whether the proposal came from the observation cache
        fingerprint: Cache key of the instruction, when one was computed
        duration_ms: Wall time spent in the executor
    """
    proposal: ActionProposal
    state: ActionState = ActionState.PENDING
    failure: Optional[FailureKind] = None
    error: Optional[ActwrightError] = None
    locator: Optional[ResolvedLocator] = None
    history: List[ActionState] = field(default_factory=lambda: [ActionState.PENDING])
    keystroke_delays_ms: List[float] = field(default_factory=list)
    from_cache: bool = False
    fingerprint: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.state == ActionState.SUCCEEDED

    @property
    def resolved(self) -> bool:
        """Whether the action got past RESOLVING."""
        return ActionState.READY in self.history

    @property
    def needs_reobservation(self) -> bool:
        """True when the caller should capture a fresh snapshot and ask again."""
        return self.failure in (FailureKind.STALE, FailureKind.UNRESOLVABLE)

    @classmethod
    def rejected(cls, proposal: ActionProposal, error: InvalidProposal) -> "ActionOutcome":
        """Outcome for a proposal that failed validation before any driver call."""
        return cls(
            proposal=proposal,
            state=ActionState.FAILED,
            failure=FailureKind.INVALID_PROPOSAL,
            error=error,
            history=[ActionState.PENDING, ActionState.FAILED],
        )

    def to_dict(self) -> dict:
        return {
            "proposal": self.proposal.to_payload(),
            "state": self.state.value,
            "failure": self.failure.value if self.failure else None,
            "error": str(self.error) if self.error else None,
            "xpath": self.locator.xpath if self.locator else None,
            "from_cache": self.from_cache,
            "duration_ms": round(self.duration_ms, 1),
        }


class ActionExecutor:
    """
    Execute validated actions through an automation driver.

    Usage:
        executor = ActionExecutor(driver, settings=settings.executor)
        outcome = await executor.execute(proposal, snapshot)
        if outcome.needs_reobservation:
            ...
    """

    def __init__(
        self,
        driver: IAutomationDriver,
        resolver: Optional[LocatorResolver] = None,
        settings: Optional[ExecutorSettings] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            driver: Automation driver
            resolver: Locator resolver (a default one is created if omitted)
            settings: Executor settings
            rng: Random source for keystroke delays
            sleep: Awaitable used for every deliberate wait
        """
        self._driver = driver
        self._resolver = resolver or LocatorResolver()
        self._settings = settings or ExecutorSettings()
        self._rng = rng or random.Random()
        self._sleep = sleep

    async def execute(
        self,
        proposal: ActionProposal,
        snapshot: Optional[IndexedSnapshot] = None,
        locator: Optional[ResolvedLocator] = None,
        deadline: Optional[float] = None,
        timeout_ms: Optional[int] = None,
    ) -> ActionOutcome:
        """
        Run one action to completion.

        Args:
            proposal: The action
            snapshot: Snapshot to resolve the target (and scroll labels) against
            locator: Pre-resolved locator for the target, skips `resolve`
            deadline: Absolute event loop time (seconds) to give up at
            timeout_ms: Relative alternative to `deadline`

        Returns:
            ActionOutcome in SUCCEEDED or FAILED state
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        if deadline is None:
            deadline = started + (timeout_ms or self._settings.default_timeout_ms) / 1000

        outcome = ActionOutcome(proposal=proposal, locator=locator)
        try:
            await self._run(outcome, snapshot, deadline)
        finally:
            outcome.duration_ms = (loop.time() - started) * 1000
        return outcome

    async def _run(
        self,
        outcome: ActionOutcome,
        snapshot: Optional[IndexedSnapshot],
        deadline: float,
    ) -> None:
        # PENDING: nothing reaches the driver before the proposal is valid
        try:
            proposal = self.check(outcome.proposal)
        except InvalidProposal as e:
            self._fail(outcome, FailureKind.INVALID_PROPOSAL, e)
            return
        key = canonical_key(proposal.argument) if proposal.method == ActionMethod.PRESS else None

        self._transition(outcome, ActionState.RESOLVING)
        try:
            element = await self._resolve(outcome, proposal, snapshot, deadline)
        except StaleLocator as e:
            self._fail(outcome, FailureKind.STALE, e)
            return
        except UnresolvableNode as e:
            self._fail(outcome, FailureKind.UNRESOLVABLE, e)
            return
        except ActionTimeout as e:
            self._fail(outcome, FailureKind.TIMEOUT, e)
            return
        except Exception as e:
            self._fail(outcome, FailureKind.DRIVER_ERROR, self._as_driver_error(e, "resolve", outcome))
            return

        self._transition(outcome, ActionState.READY)
        self._transition(outcome, ActionState.EXECUTING)
        try:
            await self._dispatch(outcome, proposal, element, key, deadline)
        except OptionNotFound as e:
            self._fail(outcome, FailureKind.OPTION_NOT_FOUND, e)
            return
        except ActionTimeout as e:
            self._fail(outcome, FailureKind.TIMEOUT, e)
            return
        except StaleLocator as e:
            self._fail(outcome, FailureKind.STALE, e)
            return
        except Exception as e:
            self._fail(outcome, FailureKind.DRIVER_ERROR, self._as_driver_error(e, proposal.method.value, outcome))
            return

        self._transition(outcome, ActionState.SUCCEEDED)
        logger.debug(f"Succeeded: {proposal}")

    # =========================================================================
    # PENDING
    # =========================================================================

    @staticmethod
    def check(proposal: ActionProposal) -> ActionProposal:
        """
        Validate a proposal without touching the driver.

        Raises:
            InvalidProposal: If the proposal cannot be executed
        """
        return validate_proposal(proposal)

    # =========================================================================
    # RESOLVING
    # =========================================================================

    async def _resolve(
        self,
        outcome: ActionOutcome,
        proposal: ActionProposal,
        snapshot: Optional[IndexedSnapshot],
        deadline: float,
    ) -> Optional[LiveElement]:
        """Live element the action targets, or None when it needs none."""
        if proposal.method == ActionMethod.PRESS:
            return None

        if proposal.method == ActionMethod.SCROLL:
            if parse_percentage(proposal.argument) is not None:
                return None
            node = self._find_section(proposal.argument, snapshot)
            outcome.locator = self._resolver.resolve(node.node_id, snapshot)
        elif outcome.locator is None:
            if snapshot is None:
                raise UnresolvableNode("No snapshot to resolve the target against", proposal.target_node_id)
            outcome.locator = self._resolver.resolve(
                proposal.target_node_id, snapshot, version=proposal.snapshot_version
            )

        return await self._re_resolve_with_retry(outcome.locator, deadline)

    async def _re_resolve_with_retry(self, locator: ResolvedLocator, deadline: float) -> LiveElement:
        config = RetryConfig(
            max_attempts=2,
            initial_delay_ms=self._settings.resolve_retry_delay_ms,
            retry_on=(StaleLocator,),
        )

        async def attempt() -> LiveElement:
            return await self._within(self._resolver.re_resolve(locator, self._driver), deadline, "resolve")

        async def bounded_sleep(seconds: float) -> None:
            await self._sleep_within(seconds, deadline, "resolve")

        return await retry_async(attempt, config, sleep=bounded_sleep)

    def _find_section(self, label: str, snapshot: Optional[IndexedSnapshot]) -> AccessibilityNode:
        """Element node for a semantic scroll target such as 'footer'."""
        if snapshot is None:
            raise UnresolvableNode(f"No snapshot to find section {label!r} in")

        for node in snapshot.find(name=label):
            if node.is_element:
                return node

        role = LANDMARK_SYNONYMS.get(label.strip().casefold(), label.strip().casefold())
        for node in snapshot.find(role=role):
            if node.is_element:
                return node

        raise UnresolvableNode(f"No section matches scroll target {label!r}")

    # =========================================================================
    # EXECUTING
    # =========================================================================

    async def _dispatch(
        self,
        outcome: ActionOutcome,
        proposal: ActionProposal,
        element: Optional[LiveElement],
        key: Optional[str],
        deadline: float,
    ) -> None:
        method = proposal.method
        driver = self._driver

        if method in (ActionMethod.CLICK, ActionMethod.HOVER):
            await self._wait_actionable(element, deadline)
            primitive = driver.click if method == ActionMethod.CLICK else driver.hover
            await self._within(primitive(element), deadline, method.value)

        elif method == ActionMethod.FILL:
            await self._wait_actionable(element, deadline)
            await self._within(driver.set_value(element, proposal.argument), deadline, method.value)

        elif method == ActionMethod.TYPE:
            await self._wait_actionable(element, deadline)
            await self._type(outcome, element, proposal.argument, deadline)

        elif method == ActionMethod.SELECT_OPTION:
            state = await self._wait_actionable(element, deadline)
            await self._select(outcome, element, state, proposal.argument, deadline)

        elif method == ActionMethod.SCROLL:
            if element is not None:
                await self._within(driver.scroll_to(element), deadline, method.value)
            else:
                percentage = parse_percentage(proposal.argument)
                height = await self._within(driver.page_height(), deadline, method.value)
                offset = round(height * percentage / 100)
                await self._within(driver.scroll_to(offset), deadline, method.value)

        elif method == ActionMethod.PRESS:
            await self._within(driver.key_press(key), deadline, method.value)

    async def _type(
        self,
        outcome: ActionOutcome,
        element: LiveElement,
        text: str,
        deadline: float,
    ) -> None:
        """Clear, then one keystroke per character with a randomized gap."""
        low = self._settings.type_delay_min_ms
        high = self._settings.type_delay_max_ms

        await self._within(self._driver.set_value(element, ""), deadline, "type")
        for i, char in enumerate(text):
            await self._within(self._driver.key_stroke(element, char), deadline, "type")
            if i < len(text) - 1:
                delay_ms = self._rng.uniform(low, high)
                outcome.keystroke_delays_ms.append(delay_ms)
                await self._sleep_within(delay_ms / 1000, deadline, "type")

    async def _select(
        self,
        outcome: ActionOutcome,
        element: LiveElement,
        state: ElementState,
        wanted: str,
        deadline: float,
    ) -> None:
        """Visible text first, then option value; custom dropdowns are clicked open."""
        driver = self._driver

        if state.is_native_select:
            options = await self._within(driver.list_options(element), deadline, "selectOption")
            wanted_text = " ".join(wanted.split()).casefold()
            for option in options:
                if " ".join(option.text.split()).casefold() == wanted_text:
                    await self._within(driver.select_by_text(element, option.text), deadline, "selectOption")
                    return
            for option in options:
                if option.value == wanted:
                    await self._within(driver.select_by_value(element, option.value), deadline, "selectOption")
                    return
            raise OptionNotFound(
                f"No option with text or value {wanted!r}",
                wanted,
                available=[o.text for o in options],
            )

        # Custom dropdown: open, locate the option by its text, click it
        frame_index = outcome.locator.frame_index if outcome.locator else 0
        await self._within(driver.click(element), deadline, "selectOption")
        option = await self._within(driver.find_by_text(frame_index, wanted, "option"), deadline, "selectOption")
        if option is None:
            raise OptionNotFound(f"Dropdown has no option {wanted!r}", wanted)
        await self._wait_actionable(option, deadline)
        await self._within(driver.click(option), deadline, "selectOption")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _wait_actionable(self, element: LiveElement, deadline: float) -> ElementState:
        loop = asyncio.get_running_loop()
        bounded = min(deadline, loop.time() + self._settings.actionable_timeout_ms / 1000)
        return await self._within(
            self._driver.wait_until_actionable(element, bounded), deadline, "waitUntilActionable"
        )

    async def _within(self, awaitable: Awaitable[Any], deadline: float, method: str) -> Any:
        """Await with whatever time is left before the deadline."""
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise ActionTimeout(f"Deadline passed before {method}", method, 0)
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError:
            raise ActionTimeout(f"{method} did not finish before the deadline", method, int(remaining * 1000))

    async def _sleep_within(self, seconds: float, deadline: float, method: str) -> None:
        remaining = deadline - asyncio.get_running_loop().time()
        if seconds > remaining:
            raise ActionTimeout(f"Deadline passed while waiting during {method}", method, int(max(remaining, 0) * 1000))
        await self._sleep(seconds)

    def _transition(self, outcome: ActionOutcome, state: ActionState) -> None:
        logger.debug(f"{outcome.proposal.target_node_id}: {outcome.state.value} -> {state.value}")
        outcome.state = state
        outcome.history.append(state)

    def _fail(self, outcome: ActionOutcome, kind: FailureKind, error: ActwrightError) -> None:
        outcome.failure = kind
        outcome.error = error
        self._transition(outcome, ActionState.FAILED)
        logger.warning(f"Action {outcome.proposal} failed ({kind.value}): {error}")

    @staticmethod
    def _as_driver_error(error: Exception, operation: str, outcome: ActionOutcome) -> ActwrightError:
        if isinstance(error, ActwrightError):
            return error
        xpath = outcome.locator.xpath if outcome.locator else None
        return DriverError(f"{type(error).__name__}: {error}", operation, xpath)
