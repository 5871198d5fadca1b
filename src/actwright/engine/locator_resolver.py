"""
Locator Resolver - Node ids to durable structural locators.

A locator is the chain of `{tag, index}` steps from the document root to the
target, where `index` counts same-tag element siblings (1-based, like XPath).
It does not depend on class names or ids, so cosmetic restyling does not
break it; reordering siblings does.

Locators carry the snapshot version they came from and the target's
role/name, so that:
- using a locator against a different snapshot is detected
- a live walk that lands on a different element is reported as stale
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from actwright.engine.tree_indexer import AccessibilityNode, IndexedSnapshot
from actwright.exceptions import SnapshotMismatch, StaleLocator, UnresolvableNode
from actwright.interfaces.driver import IAutomationDriver, LiveElement

logger = logging.getLogger(__name__)

# Tags that can appear as an XPath name test
_TAG_PATTERN = re.compile(r"^[a-z][a-z0-9._:-]*$")


def _normalize_name(name: Optional[str]) -> str:
    return " ".join((name or "").split()).casefold()


@dataclass(frozen=True)
class LocatorStep:
    """One step of a structural path."""
    tag: str
    index: int

    def __str__(self) -> str:
        return f"{self.tag}[{self.index}]"


@dataclass(frozen=True)
class ResolvedLocator:
    """
    Durable structural path to an element.

    Attributes:
        node_id: Node the path was resolved from
        frame_index: Frame the path applies to
        steps: Root-to-leaf `{tag, index}` steps
        snapshot_version: Version tag of the source snapshot
        role: Target role at resolution time
        name: Target accessible name at resolution time
    """
    node_id: str
    frame_index: int
    steps: Tuple[LocatorStep, ...]
    snapshot_version: str
    role: str = ""
    name: str = ""

    @property
    def xpath(self) -> str:
        return "/" + "/".join(str(step) for step in self.steps)

    @property
    def tag(self) -> str:
        return self.steps[-1].tag

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "frameIndex": self.frame_index,
            "xpath": self.xpath,
            "snapshotVersion": self.snapshot_version,
            "role": self.role,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedLocator":
        steps = []
        for part in data["xpath"].strip("/").split("/"):
            match = re.match(r"^([^\[]+)\[(\d+)\]$", part)
            if not match:
                raise ValueError(f"Malformed locator step: {part!r}")
            steps.append(LocatorStep(match.group(1), int(match.group(2))))
        return cls(
            node_id=data["nodeId"],
            frame_index=int(data.get("frameIndex", 0)),
            steps=tuple(steps),
            snapshot_version=data["snapshotVersion"],
            role=data.get("role", ""),
            name=data.get("name", ""),
        )


class LocatorResolver:
    """
    Resolve node ids to locators and locators to live elements.

    Usage:
        resolver = LocatorResolver()
        locator = resolver.resolve("0-7", snapshot)
        element = await resolver.re_resolve(locator, driver)
    """

    def __init__(self, verify_target: bool = True):
        """
        Args:
            verify_target: Check the live element's tag/role/name against
                the locator after walking the path
        """
        self._verify_target = verify_target

    def resolve(
        self,
        node_id: str,
        snapshot: IndexedSnapshot,
        version: Optional[str] = None,
    ) -> ResolvedLocator:
        """
        Build the structural path for a node.

        Args:
            node_id: Node to resolve
            snapshot: Snapshot the id is looked up in
            version: Version of the snapshot the id was chosen from; ids are
                positional, so they are only meaningful in that snapshot

        Raises:
            SnapshotMismatch: If `version` is not the snapshot's version
            UnresolvableNode: If the id is absent, the node has no backing
                element, or an ancestor cannot be matched positionally
        """
        if version is not None:
            self._check_version(node_id, version, snapshot)
        node = snapshot.get(node_id)
        if node is None:
            raise UnresolvableNode(f"Node {node_id} is not in the snapshot", node_id)
        if not node.is_element:
            raise UnresolvableNode(f"Node {node_id} ({node.role}) has no backing element", node_id)

        frame_root = self._frame_root(snapshot, node.frame_index)
        chain = [n for n in snapshot.path_nodes(node_id) if n.is_element]

        steps: List[LocatorStep] = []
        parent: Optional[AccessibilityNode] = None
        for element in chain:
            tag = element.tag_name or ""
            if not _TAG_PATTERN.match(tag):
                raise UnresolvableNode(
                    f"Ancestor {element.node_id} has tag {tag!r} that cannot be matched positionally",
                    node_id,
                )
            scope = [frame_root] if parent is None else list(parent.children)
            same_tag = [n for n in self._element_children(scope) if n.tag_name == tag]
            position = next(
                (i for i, n in enumerate(same_tag) if n.node_id == element.node_id),
                None,
            )
            if position is None:
                raise UnresolvableNode(
                    f"Ancestor {element.node_id} not found among its <{tag}> siblings",
                    node_id,
                )
            steps.append(LocatorStep(tag, position + 1))
            parent = element

        locator = ResolvedLocator(
            node_id=node_id,
            frame_index=node.frame_index,
            steps=tuple(steps),
            snapshot_version=snapshot.version,
            role=node.role,
            name=node.name,
        )
        logger.debug(f"Resolved {node_id} -> {locator.xpath}")
        return locator

    def node_for(self, locator: ResolvedLocator, snapshot: IndexedSnapshot) -> AccessibilityNode:
        """
        Look up a locator's node in a snapshot.

        Raises:
            SnapshotMismatch: If the locator came from a different snapshot
            UnresolvableNode: If the node is missing
        """
        self._check_version(locator.node_id, locator.snapshot_version, snapshot)
        node = snapshot.get(locator.node_id)
        if node is None:
            raise UnresolvableNode(f"Node {locator.node_id} is not in the snapshot", locator.node_id)
        return node

    async def re_resolve(self, locator: ResolvedLocator, driver: IAutomationDriver) -> LiveElement:
        """
        Walk the path against the current document.

        Raises:
            StaleLocator: If a step has no matching live element, or the
                element found is not the one the locator was resolved for
        """
        xpath = locator.xpath
        current: Optional[LiveElement] = None
        for i, step in enumerate(locator.steps):
            candidates = await driver.query_children(locator.frame_index, current, step.tag)
            if len(candidates) < step.index:
                raise StaleLocator(
                    f"No live element for step {i + 1} ({step}) of {xpath}",
                    xpath,
                    step=i,
                )
            current = candidates[step.index - 1]

        if self._verify_target:
            await self._verify(locator, driver, current)
        return current

    async def _verify(self, locator: ResolvedLocator, driver: IAutomationDriver, element: LiveElement) -> None:
        state = await driver.inspect(element)
        xpath = locator.xpath
        last = len(locator.steps) - 1
        if not state.attached:
            raise StaleLocator(f"Element at {xpath} is detached", xpath, step=last)
        if state.tag != locator.tag:
            raise StaleLocator(f"Element at {xpath} is a <{state.tag}>", xpath, step=last)
        if state.role is not None and locator.role and state.role != locator.role:
            raise StaleLocator(
                f"Element at {xpath} has role {state.role!r}, expected {locator.role!r}",
                xpath,
                step=last,
            )
        if state.name is not None and locator.name and _normalize_name(state.name) != _normalize_name(locator.name):
            raise StaleLocator(
                f"Element at {xpath} is named {state.name!r}, expected {locator.name!r}",
                xpath,
                step=last,
            )

    @staticmethod
    def _check_version(node_id: str, version: str, snapshot: IndexedSnapshot) -> None:
        if version != snapshot.version:
            raise SnapshotMismatch(
                f"Node {node_id} belongs to another snapshot",
                node_id,
                expected=version,
                actual=snapshot.version,
            )

    @staticmethod
    def _frame_root(snapshot: IndexedSnapshot, frame_index: int) -> AccessibilityNode:
        for root in snapshot.roots:
            if root.frame_index == frame_index:
                return root
        raise UnresolvableNode(f"Frame {frame_index} is not in the snapshot")

    @staticmethod
    def _element_children(scope: List[AccessibilityNode]) -> List[AccessibilityNode]:
        """Element nodes under `scope`, looking through nodes with no element behind them."""
        found: List[AccessibilityNode] = []
        stack = list(reversed(scope))
        while stack:
            node = stack.pop()
            if node.is_element:
                found.append(node)
            else:
                stack.extend(reversed(node.children))
        return found
