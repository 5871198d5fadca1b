"""
Observation Cache - Skip the interpreter for instructions seen before.

Entries are keyed by a fingerprint of the normalized instruction and a
structural hash of the snapshot's top levels:

- instruction: whitespace collapsed, case-folded
- structure: (frame, depth, role, name) of every node within `depth_bound`
  levels of a frame root, in pre-order

Bounding the depth keeps the key stable when distant parts of the page
change. Two different pages that share the same shallow structure will
collide; callers tune that with `depth_bound`.
"""

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

from actwright.engine.llm.schemas import ActionProposal
from actwright.engine.locator_resolver import ResolvedLocator
from actwright.engine.tree_indexer import IndexedSnapshot

logger = logging.getLogger(__name__)

DEFAULT_DEPTH_BOUND = 3


def normalize_instruction(instruction: str) -> str:
    """Trim, collapse whitespace and case-fold."""
    return " ".join(instruction.split()).casefold()


def structure_hash(snapshot: IndexedSnapshot, depth_bound: int = DEFAULT_DEPTH_BOUND) -> str:
    """Hash of (role, name) pairs of nodes within `depth_bound` of a frame root."""
    digest = hashlib.md5()
    for root in snapshot.roots:
        stack = [root]
        while stack:
            node = stack.pop()
            name = " ".join(node.name.split()).casefold()
            digest.update(f"{node.frame_index}|{node.depth}|{node.role}|{name}\n".encode())
            if node.depth < depth_bound:
                stack.extend(reversed(node.children))
    return digest.hexdigest()


def compute_fingerprint(
    instruction: str,
    snapshot: IndexedSnapshot,
    depth_bound: int = DEFAULT_DEPTH_BOUND,
) -> str:
    """
    Cache key for an (instruction, page) pair.

    Pure and deterministic: the same instruction against a structurally
    equivalent snapshot always yields the same key.
    """
    data = f"{normalize_instruction(instruction)}\x00{structure_hash(snapshot, depth_bound)}"
    return hashlib.md5(data.encode()).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached resolution. Never mutated after creation.

    Attributes:
        fingerprint: Cache key
        proposal: The validated action
        locator: Locator resolved for the proposal's target, if any
        created_at: Creation time
    """
    fingerprint: str
    proposal: ActionProposal
    locator: Optional[ResolvedLocator]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "proposal": self.proposal.to_payload(),
            "locator": self.locator.to_dict() if self.locator else None,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        locator = data.get("locator")
        return cls(
            fingerprint=data["fingerprint"],
            proposal=ActionProposal.model_validate(data["proposal"]),
            locator=ResolvedLocator.from_dict(locator) if locator else None,
            created_at=datetime.fromisoformat(data["createdAt"]),
        )


class ObservationCache:
    """
    Fingerprint -> CacheEntry store with optional JSON persistence.

    Eviction policy belongs to the caller: entries leave the cache through
    `invalidate`, `clear`, or the optional TTL checked on lookup.

    Usage:
        cache = ObservationCache(depth_bound=3)
        fp = cache.fingerprint("click login", snapshot)
        entry = cache.lookup(fp)
        if entry is None:
            cache.store(fp, proposal, locator)
    """

    def __init__(
        self,
        depth_bound: int = DEFAULT_DEPTH_BOUND,
        ttl_seconds: Optional[int] = None,
        path: Optional[Union[str, Path]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            depth_bound: Tree depth included in the structural hash
            ttl_seconds: Entries older than this are evicted on lookup
            path: Default file for save()/load()
            clock: Time source
        """
        self._depth_bound = depth_bound
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds else None
        self._path = Path(path) if path else None
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

        self._hits = 0
        self._misses = 0

    @property
    def depth_bound(self) -> int:
        return self._depth_bound

    def fingerprint(self, instruction: str, snapshot: IndexedSnapshot) -> str:
        return compute_fingerprint(instruction, snapshot, self._depth_bound)

    def lookup(self, fingerprint: str) -> Optional[CacheEntry]:
        entry = self._entries.get(fingerprint)
        if entry is not None and self._ttl is not None:
            if self._clock() - entry.created_at > self._ttl:
                logger.debug(f"Cache entry {fingerprint[:12]} expired")
                del self._entries[fingerprint]
                entry = None

        if entry is None:
            self._misses += 1
            logger.debug(f"Cache miss {fingerprint[:12]}")
            return None

        self._hits += 1
        logger.debug(f"Cache hit {fingerprint[:12]}: {entry.proposal}")
        return entry

    def store(
        self,
        fingerprint: str,
        proposal: ActionProposal,
        locator: Optional[ResolvedLocator] = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            fingerprint=fingerprint,
            proposal=proposal,
            locator=locator,
            created_at=self._clock(),
        )
        self._entries[fingerprint] = entry
        return entry

    def invalidate(self, fingerprint: str) -> bool:
        """Drop one entry. Returns whether it existed."""
        return self._entries.pop(fingerprint, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Write all entries to a JSON file (atomically).

        Returns:
            The path written
        """
        target = self._target(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = [entry.to_dict() for entry in self._entries.values()]

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".actwright-cache-")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, target)
        except BaseException:
            os.unlink(tmp_name)
            raise

        logger.debug(f"Saved {len(payload)} cache entries to {target}")
        return target

    def load(self, path: Optional[Union[str, Path]] = None) -> int:
        """
        Merge entries from a JSON file. A missing file loads nothing.

        Returns:
            Number of entries loaded
        """
        target = self._target(path)
        if not target.exists():
            return 0

        with open(target, "r") as f:
            payload = json.load(f)

        for data in payload:
            entry = CacheEntry.from_dict(data)
            self._entries[entry.fingerprint] = entry

        logger.debug(f"Loaded {len(payload)} cache entries from {target}")
        return len(payload)

    def _target(self, path: Optional[Union[str, Path]]) -> Path:
        if path is not None:
            return Path(path)
        if self._path is None:
            raise ValueError("No cache path configured")
        return self._path

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics."""
        lookups = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / max(lookups, 1),
        }
