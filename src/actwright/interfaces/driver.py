"""
Automation Driver Interface - The primitive browser operations Actwright drives.

Implementations (Playwright, or an in-memory fake in tests) expose two groups
of operations:

- live document queries, used to re-walk structural locators
- side-effecting primitives, each either returning or raising DriverError

Example:
    >>> from actwright.browsers import PlaywrightDriver
    >>> driver = PlaywrightDriver(page)
    >>> element = await resolver.re_resolve(locator, driver)
    >>> await driver.click(element)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

# Opaque handle to a live element; its concrete type belongs to the driver
LiveElement = Any


@dataclass
class ElementState:
    """
    Point-in-time state of a live element.

    Attributes:
        tag: Lowercase tag name
        role: Computed role, None if the driver cannot compute one
        name: Computed accessible name, None if unknown
        attached: Whether the element is still connected to the document
        visible: Whether the element is rendered and visible
        enabled: Whether the element accepts input
        bounding_box: (x, y, width, height), None when not rendered
        is_native_select: Whether the element is a native <select>
    """
    tag: str
    role: Optional[str] = None
    name: Optional[str] = None
    attached: bool = True
    visible: bool = True
    enabled: bool = True
    bounding_box: Optional[Tuple[float, float, float, float]] = None
    is_native_select: bool = False


@dataclass
class OptionInfo:
    """One option of a select-like element."""
    text: str
    value: str


@dataclass
class DriverCall:
    """Record of a primitive call, kept by drivers that trace."""
    operation: str
    args: Tuple[Any, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)


class IAutomationDriver(ABC):
    """
    Abstract interface for the browser-control driver.

    Every primitive either completes or raises DriverError. Waits honor the
    absolute deadline (event loop time, seconds) they are given.
    """

    # ------------------------------------------------------------------
    # Snapshot capture and live document queries
    # ------------------------------------------------------------------

    @abstractmethod
    async def capture_snapshot(self) -> List[Dict[str, Any]]:
        """
        Capture raw accessibility trees, one per frame, main frame first.

        Returns:
            Raw trees of `{role, name, description, tagName, children}`
        """
        ...

    @abstractmethod
    async def query_children(
        self,
        frame_index: int,
        parent: Optional[LiveElement],
        tag: str,
    ) -> List[LiveElement]:
        """
        Element children of `parent` with the given tag, in document order.

        Args:
            frame_index: Frame to query
            parent: Parent element, None for the document itself
            tag: Lowercase tag name
        """
        ...

    @abstractmethod
    async def inspect(self, element: LiveElement) -> ElementState:
        """Current state of a live element."""
        ...

    @abstractmethod
    async def find_by_text(
        self,
        frame_index: int,
        text: str,
        role: str = "option",
    ) -> Optional[LiveElement]:
        """First visible element with the given role whose accessible name is `text`."""
        ...

    @abstractmethod
    async def list_options(self, element: LiveElement) -> List[OptionInfo]:
        """Options of a native select element."""
        ...

    @abstractmethod
    async def page_height(self) -> int:
        """Scrollable height of the main viewport in pixels."""
        ...

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    @abstractmethod
    async def click(self, element: LiveElement) -> None:
        ...

    @abstractmethod
    async def hover(self, element: LiveElement) -> None:
        ...

    @abstractmethod
    async def set_value(self, element: LiveElement, text: str) -> None:
        """Replace the element's content in one operation."""
        ...

    @abstractmethod
    async def key_stroke(self, element: LiveElement, char: str) -> None:
        """Send a single character keystroke to the element."""
        ...

    @abstractmethod
    async def select_by_text(self, element: LiveElement, text: str) -> None:
        ...

    @abstractmethod
    async def select_by_value(self, element: LiveElement, value: str) -> None:
        ...

    @abstractmethod
    async def scroll_to(self, target: Union[LiveElement, int]) -> None:
        """Scroll an element into view, or the main viewport to a pixel offset."""
        ...

    @abstractmethod
    async def key_press(self, key_name: str) -> None:
        """Press a (canonical) key name on the focused element."""
        ...

    @abstractmethod
    async def wait_until_actionable(self, element: LiveElement, deadline: float) -> ElementState:
        """
        Wait until the element is attached, visible, enabled and stable.

        Args:
            element: Live element
            deadline: Absolute event loop time (seconds) to give up at

        Returns:
            The last observed state

        Raises:
            ActionTimeout: If the deadline passes first
        """
        ...
