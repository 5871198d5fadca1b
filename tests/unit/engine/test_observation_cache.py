"""
Tests for the observation cache - fingerprints, lookups and persistence.
"""

import json
from datetime import datetime, timedelta

import pytest

from actwright.engine.llm.schemas import ActionProposal
from actwright.engine.locator_resolver import LocatorResolver
from actwright.engine.observation_cache import (
    CacheEntry,
    ObservationCache,
    compute_fingerprint,
    normalize_instruction,
    structure_hash,
)
from actwright.engine.tree_indexer import TreeIndexer
from tests.fakes import FakeElement


PROPOSAL = ActionProposal(targetNodeId="0-9", description="Send button", method="click")


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now


class TestFingerprint:
    """Test fingerprint computation."""

    def test_instruction_normalization(self):
        assert normalize_instruction("  Click   the LOGIN button ") == "click the login button"

    def test_is_deterministic(self, snapshot, driver):
        again = TreeIndexer().index_frames(driver.raw_frames())
        assert compute_fingerprint("Click send", snapshot) == compute_fingerprint("click  SEND ", again)

    def test_differs_by_instruction(self, snapshot):
        assert compute_fingerprint("Click send", snapshot) != compute_fingerprint("Click cancel", snapshot)

    def test_deep_changes_do_not_affect_the_key(self, snapshot, driver, fake_page):
        """Nodes below the depth bound are not hashed."""
        before = structure_hash(snapshot, depth_bound=3)

        fake_page.send.name = "Send now"
        fake_page.size_list.append(FakeElement("li", "Medium", role="option"))
        after = TreeIndexer().index_frames(driver.raw_frames())

        assert structure_hash(after, depth_bound=3) == before
        assert after.version != snapshot.version

    def test_shallow_changes_affect_the_key(self, snapshot, driver, fake_page):
        before = structure_hash(snapshot, depth_bound=3)

        fake_page.root.children[0].append(FakeElement("nav", "Primary"))
        after = TreeIndexer().index_frames(driver.raw_frames())

        assert structure_hash(after, depth_bound=3) != before

    def test_depth_bound_is_tunable(self, snapshot, driver, fake_page):
        fake_page.send.name = "Send now"
        after = TreeIndexer().index_frames(driver.raw_frames())

        assert structure_hash(after, depth_bound=10) != structure_hash(snapshot, depth_bound=10)


class TestLookupAndStore:
    """Test the in-memory store."""

    def test_miss_then_hit(self, snapshot):
        cache = ObservationCache()
        fingerprint = cache.fingerprint("Click send", snapshot)

        assert cache.lookup(fingerprint) is None
        cache.store(fingerprint, PROPOSAL)
        entry = cache.lookup(fingerprint)

        assert entry.proposal == PROPOSAL
        assert entry.locator is None
        assert cache.get_stats()["hits"] == 1
        assert cache.get_stats()["misses"] == 1

    def test_store_with_locator(self, snapshot):
        cache = ObservationCache()
        locator = LocatorResolver().resolve(snapshot.find(role="button", name="Send")[0].node_id, snapshot)

        cache.store("fp", PROPOSAL, locator)

        assert cache.lookup("fp").locator == locator

    def test_invalidate(self):
        cache = ObservationCache()
        cache.store("fp", PROPOSAL)

        assert cache.invalidate("fp")
        assert not cache.invalidate("fp")
        assert "fp" not in cache

    def test_clear(self):
        cache = ObservationCache()
        cache.store("a", PROPOSAL)
        cache.store("b", PROPOSAL)

        cache.clear()

        assert len(cache) == 0

    def test_entries_are_immutable(self):
        entry = ObservationCache().store("fp", PROPOSAL)

        with pytest.raises(Exception):
            entry.fingerprint = "other"

    def test_ttl_eviction(self):
        clock = FakeClock()
        cache = ObservationCache(ttl_seconds=60, clock=clock)
        cache.store("fp", PROPOSAL)

        clock.now += timedelta(seconds=30)
        assert cache.lookup("fp") is not None

        clock.now += timedelta(seconds=31)
        assert cache.lookup("fp") is None
        assert "fp" not in cache


class TestPersistence:
    """Test JSON persistence."""

    def test_save_and_load(self, tmp_path, snapshot):
        path = tmp_path / "cache" / "actions.json"
        locator = LocatorResolver().resolve(snapshot.find(role="button", name="Send")[0].node_id, snapshot)
        cache = ObservationCache(path=path, clock=FakeClock())
        cache.store("fp", PROPOSAL, locator)

        cache.save()
        restored = ObservationCache(path=path)

        assert restored.load() == 1
        entry = restored.lookup("fp")
        assert entry.proposal == PROPOSAL
        assert entry.locator == locator
        assert entry.created_at == datetime(2024, 5, 1, 12, 0, 0)

    def test_file_format(self, tmp_path):
        path = tmp_path / "actions.json"
        cache = ObservationCache(clock=FakeClock())
        cache.store("fp", PROPOSAL)

        cache.save(path)
        data = json.loads(path.read_text())

        assert data == [{
            "fingerprint": "fp",
            "proposal": PROPOSAL.to_payload(),
            "locator": None,
            "createdAt": "2024-05-01T12:00:00",
        }]

    def test_missing_file_loads_nothing(self, tmp_path):
        assert ObservationCache().load(tmp_path / "absent.json") == 0

    def test_no_path_configured(self):
        with pytest.raises(ValueError):
            ObservationCache().save()

    def test_entry_round_trip(self):
        entry = CacheEntry("fp", PROPOSAL, None, datetime(2024, 1, 1))
        assert CacheEntry.from_dict(entry.to_dict()) == entry
