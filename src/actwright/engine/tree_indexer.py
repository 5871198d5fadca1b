"""
Tree Indexer - Stable, hierarchical ids for accessibility snapshots.

Assigns every node of a captured accessibility snapshot a `frameIndex-sequence`
id in depth-first pre-order, and builds the reverse index from id to node and
to its positional path (child indices from the frame root).

Indexing is pure: the same raw tree always yields the same ids, which is
what makes cache fingerprints reproducible across captures.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from actwright.exceptions import InvalidSnapshot

logger = logging.getLogger(__name__)


# Roles that carry no meaning for the interpreter unless they are named
NOISE_ROLES = {"none", "presentation", "generic"}


@dataclass(frozen=True)
class AccessibilityNode:
    """
    One node of an indexed accessibility snapshot.

    Attributes:
        node_id: Stable id, `frameIndex-sequence`
        role: Semantic category (button, textbox, link, ...)
        name: Accessible name
        description: Accessible description
        tag_name: Backing DOM tag, None for nodes with no element behind them
        frame_index: 0 for the main frame, discovery order for nested frames
        depth: Distance from the frame root
        parent_id: Id of the parent node, None for a frame root
        children: Child nodes in document order
    """
    node_id: str
    role: str
    name: str = ""
    description: str = ""
    tag_name: Optional[str] = None
    frame_index: int = 0
    depth: int = 0
    parent_id: Optional[str] = None
    children: Tuple["AccessibilityNode", ...] = ()

    @property
    def is_element(self) -> bool:
        """Whether a DOM element backs this node."""
        return self.tag_name is not None

    def __repr__(self) -> str:
        return f"AccessibilityNode({self.node_id!r}, {self.role!r}, {self.name!r})"


@dataclass(frozen=True)
class IndexedSnapshot:
    """
    An indexed snapshot: one root per frame plus flat lookups.

    Resolving ids from one snapshot against another is a caller error;
    `version` lets locators detect it.
    """
    roots: Tuple[AccessibilityNode, ...]
    nodes: Mapping[str, AccessibilityNode]
    paths: Mapping[str, Tuple[int, ...]]
    version: str

    def get(self, node_id: str) -> Optional[AccessibilityNode]:
        return self.nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def iter_nodes(self) -> Iterator[AccessibilityNode]:
        """Yield all nodes in pre-order, frame by frame."""
        for root in self.roots:
            stack = [root]
            while stack:
                node = stack.pop()
                yield node
                stack.extend(reversed(node.children))

    def path_nodes(self, node_id: str) -> List[AccessibilityNode]:
        """
        Nodes from the frame root down to `node_id`, both included, found by
        following the node's positional path.
        """
        node = self.nodes[node_id]
        current = next(root for root in self.roots if root.frame_index == node.frame_index)
        chain = [current]
        for index in self.paths[node_id]:
            current = current.children[index]
            chain.append(current)
        return chain

    def find(
        self,
        role: Optional[str] = None,
        name: Optional[str] = None,
    ) -> List[AccessibilityNode]:
        """Nodes matching role and/or accessible name (case-insensitive)."""
        role_cf = role.casefold() if role else None
        name_cf = " ".join(name.split()).casefold() if name else None
        matches = []
        for node in self.iter_nodes():
            if role_cf is not None and node.role.casefold() != role_cf:
                continue
            if name_cf is not None and " ".join(node.name.split()).casefold() != name_cf:
                continue
            matches.append(node)
        return matches

    def to_prompt_context(self, max_lines: int = 400) -> str:
        """
        Render the tree as indented `[nodeId] role: name` lines for the
        interpreter. Unnamed noise roles are skipped but their subtrees kept.
        """
        lines: List[str] = []
        total = 0
        for node in self.iter_nodes():
            if node.role in NOISE_ROLES and not node.name:
                continue
            total += 1
            if len(lines) >= max_lines:
                continue
            line = f"{'  ' * node.depth}[{node.node_id}] {node.role}"
            if node.name:
                line += f": {node.name[:80]}"
            lines.append(line)

        if total > max_lines:
            lines.append(f"... and {total - max_lines} more nodes")
        return "\n".join(lines)


@dataclass
class _Pending:
    """Bookkeeping for a node between the two indexing passes."""
    raw: Mapping[str, Any]
    node_id: str
    parent_id: Optional[str]
    depth: int
    position: Tuple[int, ...]
    child_ids: List[str] = field(default_factory=list)


class TreeIndexer:
    """
    Assign node ids and build reverse indexes for raw snapshots.

    A raw node is a mapping with a non-empty `role`, optional `name`,
    `description`, `tagName` (or `tag`) and `children`.

    Usage:
        indexer = TreeIndexer()
        snapshot = indexer.index(raw_tree)
        snapshot.get("0-3").role
    """

    def index(self, raw_root: Any, frame_index: int = 0) -> IndexedSnapshot:
        """Index a single frame."""
        return self.index_frames([raw_root], first_frame=frame_index)

    def index_frames(
        self,
        raw_frames: Sequence[Any],
        first_frame: int = 0,
    ) -> IndexedSnapshot:
        """
        Index several frames at once; frame i gets index `first_frame + i`.

        Raises:
            InvalidSnapshot: If there are no frames, a frame is empty,
                or any node is malformed
        """
        if not raw_frames:
            raise InvalidSnapshot("Snapshot has no frames")

        roots: List[AccessibilityNode] = []
        nodes: Dict[str, AccessibilityNode] = {}
        paths: Dict[str, Tuple[int, ...]] = {}

        for offset, raw_root in enumerate(raw_frames):
            frame_index = first_frame + offset
            root = self._index_frame(raw_root, frame_index, nodes, paths)
            roots.append(root)

        version = self._version(roots)
        logger.debug(f"Indexed {len(nodes)} nodes across {len(roots)} frame(s), version {version}")
        return IndexedSnapshot(
            roots=tuple(roots),
            nodes=nodes,
            paths=paths,
            version=version,
        )

    def _index_frame(
        self,
        raw_root: Any,
        frame_index: int,
        nodes: Dict[str, AccessibilityNode],
        paths: Dict[str, Tuple[int, ...]],
    ) -> AccessibilityNode:
        if not raw_root:
            raise InvalidSnapshot(f"Frame {frame_index} snapshot is empty", path=f"{frame_index}")

        # Pass 1: pre-order id assignment (iterative, pages can nest deeply)
        order: List[_Pending] = []
        sequence = 0
        stack: List[Tuple[Any, Optional[_Pending], Tuple[int, ...]]] = [(raw_root, None, ())]

        while stack:
            raw, parent, position = stack.pop()
            where = f"{frame_index}:/" + "/".join(str(i) for i in position)
            self._validate(raw, where)

            pending = _Pending(
                raw=raw,
                node_id=f"{frame_index}-{sequence}",
                parent_id=parent.node_id if parent else None,
                depth=len(position),
                position=position,
            )
            sequence += 1
            order.append(pending)
            if parent is not None:
                parent.child_ids.append(pending.node_id)

            children = raw.get("children") or []
            for i in range(len(children) - 1, -1, -1):
                stack.append((children[i], pending, position + (i,)))

        # Pass 2: build immutable nodes children-first
        built: Dict[str, AccessibilityNode] = {}
        for pending in reversed(order):
            raw = pending.raw
            tag = raw.get("tagName") or raw.get("tag")
            node = AccessibilityNode(
                node_id=pending.node_id,
                role=raw["role"].strip(),
                name=(raw.get("name") or "").strip(),
                description=(raw.get("description") or "").strip(),
                tag_name=tag.lower() if tag else None,
                frame_index=frame_index,
                depth=pending.depth,
                parent_id=pending.parent_id,
                children=tuple(built[cid] for cid in pending.child_ids),
            )
            built[pending.node_id] = node

        for pending in order:
            nodes[pending.node_id] = built[pending.node_id]
            paths[pending.node_id] = pending.position

        return built[order[0].node_id]

    @staticmethod
    def _validate(raw: Any, where: str) -> None:
        if not isinstance(raw, Mapping):
            raise InvalidSnapshot(f"Node at {where} is not an object", path=where, payload=raw)
        role = raw.get("role")
        if not isinstance(role, str) or not role.strip():
            raise InvalidSnapshot(f"Node at {where} is missing a role", path=where, payload=dict(raw))
        for key in ("name", "description", "tagName", "tag"):
            value = raw.get(key)
            if value is not None and not isinstance(value, str):
                raise InvalidSnapshot(
                    f"Node at {where} has a non-string {key}", path=where, payload=dict(raw)
                )
        children = raw.get("children")
        if children is not None and not isinstance(children, list):
            raise InvalidSnapshot(f"Node at {where} has malformed children", path=where, payload=dict(raw))

    @staticmethod
    def _version(roots: Sequence[AccessibilityNode]) -> str:
        """Deterministic digest of the whole tree."""
        digest = hashlib.md5()
        for root in roots:
            stack = [root]
            while stack:
                node = stack.pop()
                digest.update(
                    f"{node.frame_index}|{node.depth}|{node.role}|{node.name}|{node.tag_name or ''}\n".encode()
                )
                stack.extend(reversed(node.children))
        return digest.hexdigest()[:16]
