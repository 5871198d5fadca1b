"""
Base Automation Driver - Behaviour shared by every driver implementation.

Concrete drivers implement the primitive operations; this base class adds
the actionability wait (attached, visible, enabled, and a bounding box that
did not move between two consecutive checks) and optional call tracing.
"""

import asyncio
import logging
from typing import Any, List

from actwright.exceptions import ActionTimeout
from actwright.interfaces.driver import DriverCall, ElementState, IAutomationDriver, LiveElement

logger = logging.getLogger(__name__)

_UNSET = object()


class BaseAutomationDriver(IAutomationDriver):
    """
    Base class for automation drivers.

    Example:
        >>> class MyDriver(BaseAutomationDriver):
        ...     async def inspect(self, element): ...
        >>> state = await MyDriver().wait_until_actionable(el, loop.time() + 5)
    """

    def __init__(self, poll_interval_ms: int = 50, trace: bool = False):
        """
        Args:
            poll_interval_ms: Interval between actionability checks
            trace: Record every primitive call in `calls`
        """
        self._poll_interval = poll_interval_ms / 1000
        self._trace = trace
        self.calls: List[DriverCall] = []

    def _record(self, operation: str, *args: Any, **extra: Any) -> None:
        if self._trace:
            self.calls.append(DriverCall(operation, args, extra))

    def calls_to(self, operation: str) -> List[DriverCall]:
        """Recorded calls of one operation, in order."""
        return [c for c in self.calls if c.operation == operation]

    async def wait_until_actionable(self, element: LiveElement, deadline: float) -> ElementState:
        loop = asyncio.get_running_loop()
        previous_box: Any = _UNSET
        checks = 0

        while True:
            state = await self.inspect(element)
            checks += 1
            ready = state.attached and state.visible and state.enabled
            if ready and state.bounding_box == previous_box:
                logger.debug(f"<{state.tag}> actionable after {checks} checks")
                return state
            previous_box = state.bounding_box if ready else _UNSET

            remaining = deadline - loop.time()
            if remaining <= 0:
                reason = (
                    "detached" if not state.attached
                    else "hidden" if not state.visible
                    else "disabled" if not state.enabled
                    else "still moving"
                )
                raise ActionTimeout(
                    f"<{state.tag}> not actionable before the deadline ({reason})",
                    "waitUntilActionable",
                    int(checks * self._poll_interval * 1000),
                )
            await asyncio.sleep(min(self._poll_interval, remaining))
