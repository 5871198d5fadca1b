"""
Snapshot and locator exceptions.
"""

from typing import Any, Optional

from actwright.exceptions.base import ActwrightError


class SnapshotError(ActwrightError):
    """Base exception for snapshot indexing and resolution errors."""
    pass


class InvalidSnapshot(SnapshotError):
    """
    The captured accessibility snapshot is empty or malformed.
    
    Raised by the tree indexer, e.g. when a node has no role.
    """
    
    def __init__(self, message: str, path: Optional[str] = None, payload: Any = None):
        super().__init__(message, {"path": path, "payload": payload})
        self.path = path
        self.payload = payload


class UnresolvableNode(SnapshotError):
    """
    A node id cannot be turned into a structural locator.
    
    The caller should capture a fresh snapshot and observe again.
    """
    
    needs_reobservation = True
    
    def __init__(self, message: str, node_id: Optional[str] = None):
        super().__init__(message, {"node_id": node_id})
        self.node_id = node_id


class SnapshotMismatch(UnresolvableNode):
    """A locator or node id was used against a snapshot it did not come from."""
    
    def __init__(self, message: str, node_id: Optional[str], expected: str, actual: str):
        super().__init__(message, node_id)
        self.details.update({"expected_version": expected, "actual_version": actual})
        self.expected = expected
        self.actual = actual


class StaleLocator(SnapshotError):
    """
    A structural path no longer matches the live document.
    
    This is the signal that a cached action needs re-observation.
    """
    
    needs_reobservation = True
    
    def __init__(self, message: str, xpath: str, step: Optional[int] = None):
        super().__init__(message, {"xpath": xpath, "step": step})
        self.xpath = xpath
        self.step = step
