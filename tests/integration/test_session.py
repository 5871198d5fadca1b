"""
Integration tests for Session - act, observe and extract end to end over the
fake page.
"""

import pytest

from actwright import ActionOutcome, ActionProposal, ActionState, FailureKind, ObservedAction, Session
from actwright.config import CacheSettings
from actwright.exceptions import InvalidProposal, SchemaMismatch, SnapshotMismatch
from tests.fakes import FakeDriver, FakeElement, FakePage, ScriptedInterpreter, SleepRecorder


def node_id(snapshot, role, name):
    return snapshot.find(role=role, name=name)[0].node_id


@pytest.fixture
def ids(snapshot):
    return {
        "message": node_id(snapshot, "textbox", "Message"),
        "send": node_id(snapshot, "button", "Send"),
        "cancel": node_id(snapshot, "button", "Cancel"),
        "country": node_id(snapshot, "combobox", "Country"),
    }


def make_session(driver, interpreter, settings, sleeper=None, rng=None):
    return Session(driver, interpreter, settings=settings, rng=rng, sleep=sleeper or SleepRecorder())


class TestAct:
    """Test act() with instructions."""

    @pytest.mark.asyncio
    async def test_type_hello_in_message_box(self, driver, fake_page, settings, ids, sleeper, rng):
        interpreter = ScriptedInterpreter(proposals=[{
            "targetNodeId": ids["message"],
            "description": "The message box",
            "method": "type",
            "arguments": ["Hello"],
        }])
        session = make_session(driver, interpreter, settings, sleeper, rng)

        outcome = await session.act("Type 'Hello' in the message box")

        assert outcome.state == ActionState.SUCCEEDED
        assert outcome.history == [
            ActionState.PENDING,
            ActionState.RESOLVING,
            ActionState.READY,
            ActionState.EXECUTING,
            ActionState.SUCCEEDED,
        ]
        assert fake_page.message.value == "Hello"
        assert len(driver.calls_to("keyStroke")) == 5
        assert len(outcome.keystroke_delays_ms) == 4
        assert all(25 <= d <= 75 for d in outcome.keystroke_delays_ms)
        assert not outcome.from_cache
        assert session.interpreter_calls == 1

    @pytest.mark.asyncio
    async def test_request_carries_instruction_and_tree(self, driver, settings, ids):
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": ids["send"], "method": "click"}])
        session = make_session(driver, interpreter, settings)

        await session.act("Click send")

        kind, request = interpreter.requests[0]
        assert kind == "propose"
        assert request.instruction == "Click send"
        assert f"[{ids['send']}] button: Send" in request.tree

    @pytest.mark.asyncio
    async def test_invalid_interpreter_answer_raises(self, driver, settings):
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": "0-9", "method": "fly"}])
        session = make_session(driver, interpreter, settings)

        with pytest.raises(InvalidProposal) as exc_info:
            await session.act("Fly away")
        assert exc_info.value.payload == {"targetNodeId": "0-9", "method": "fly"}
        assert driver.side_effects == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,argument", [("press", "Hyper"), ("scroll", "150%")])
    async def test_unexecutable_interpreter_answer_raises(self, driver, settings, method, argument):
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": "0-0", "method": method, "arguments": [argument]}])
        session = make_session(driver, interpreter, settings)

        with pytest.raises(InvalidProposal):
            await session.act("Do the thing")
        assert driver.side_effects == []

    @pytest.mark.asyncio
    async def test_more_than_one_action_is_invalid(self, driver, settings, ids):
        action = {"targetNodeId": ids["send"], "method": "click"}
        session = make_session(driver, ScriptedInterpreter(proposals=[[action, action]]), settings)

        with pytest.raises(InvalidProposal):
            await session.act("Click send")

    @pytest.mark.asyncio
    async def test_select_and_press(self, driver, fake_page, settings, ids):
        interpreter = ScriptedInterpreter(proposals=[
            {"targetNodeId": ids["country"], "method": "selectOption", "arguments": ["Canada"]},
            {"targetNodeId": "0-0", "method": "press", "arguments": ["enter"]},
        ])
        session = make_session(driver, interpreter, settings)

        assert (await session.act("Choose Canada")).success
        assert (await session.act("Press enter")).success
        assert fake_page.country.value == "ca"
        assert driver.keys_pressed == ["Enter"]


class TestCache:
    """Test the observation cache through act()."""

    @pytest.mark.asyncio
    async def test_repeat_instruction_skips_interpreter(self, driver, settings, ids):
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": ids["send"], "method": "click"}])
        session = make_session(driver, interpreter, settings)

        first = await session.act("Click send")
        second = await session.act("click   SEND")

        assert session.interpreter_calls == 1
        assert second.from_cache
        assert second.success
        assert second.proposal.method == first.proposal.method
        assert second.proposal.arguments == first.proposal.arguments
        assert second.fingerprint == first.fingerprint
        assert len(driver.calls_to("click")) == 2

    @pytest.mark.asyncio
    async def test_use_cache_false_asks_again(self, driver, settings, ids):
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": ids["send"], "method": "click"}])
        session = make_session(driver, interpreter, settings)

        await session.act("Click send")
        outcome = await session.act("Click send", use_cache=False)

        assert session.interpreter_calls == 2
        assert not outcome.from_cache

    @pytest.mark.asyncio
    async def test_cached_action_on_removed_element_is_stale(self, driver, fake_page, settings, ids):
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": ids["cancel"], "method": "click"}])
        session = make_session(driver, interpreter, settings)
        await session.act("Click cancel")

        fake_page.cancel.remove()
        outcome = await session.act("Click cancel")

        assert outcome.from_cache
        assert outcome.failure == FailureKind.STALE
        assert outcome.needs_reobservation
        assert session.interpreter_calls == 1

        # The caller decides to drop the entry and ask again
        session.cache.invalidate(outcome.fingerprint)
        assert outcome.fingerprint not in session.cache

    @pytest.mark.asyncio
    async def test_unresolvable_proposals_are_not_cached(self, driver, settings):
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": "0-999", "method": "click"}])
        session = make_session(driver, interpreter, settings)

        outcome = await session.act("Click the ghost")

        assert outcome.failure == FailureKind.UNRESOLVABLE
        assert len(session.cache) == 0

    @pytest.mark.asyncio
    async def test_disabled_cache(self, driver, settings, ids):
        settings = settings.merge_with({"cache": {"enabled": False}})
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": ids["send"], "method": "click"}])
        session = make_session(driver, interpreter, settings)

        await session.act("Click send")
        outcome = await session.act("Click send")

        assert session.cache is None
        assert outcome.fingerprint is None
        assert session.interpreter_calls == 2

    @pytest.mark.asyncio
    async def test_persisted_cache_survives_sessions(self, tmp_path, settings, ids):
        settings = settings.model_copy(update={"cache": CacheSettings(path=str(tmp_path / "cache.json"))})
        interpreter = ScriptedInterpreter(proposals=[{"targetNodeId": ids["send"], "method": "click"}])

        first = make_session(FakeDriver(FakePage().root), interpreter, settings)
        await first.act("Click send")
        first.save_cache()

        second = make_session(FakeDriver(FakePage().root), interpreter, settings)
        outcome = await second.act("Click send")

        assert outcome.from_cache
        assert outcome.success
        assert second.interpreter_calls == 0


class TestObserveThenAct:
    """Test observe() and acting on its results."""

    @pytest.mark.asyncio
    async def test_observe_drops_unresolvable_candidates(self, driver, settings, ids):
        interpreter = ScriptedInterpreter(observations=[[
            {"targetNodeId": ids["send"], "description": "Send", "method": "click"},
            {"targetNodeId": "0-999", "description": "Ghost", "method": "click"},
            {"targetNodeId": "0-0", "description": "Submit", "method": "press", "arguments": ["Enter"]},
        ]])
        session = make_session(driver, interpreter, settings)

        observed = await session.observe("Find ways to submit")

        assert [o.description for o in observed] == ["Send", "Submit"]
        assert observed[0].locator.xpath == "/html[1]/body[1]/main[1]/form[1]/button[1]"
        assert observed[1].locator is None
        assert driver.side_effects == []

    @pytest.mark.asyncio
    async def test_invalid_candidate_raises(self, driver, settings):
        interpreter = ScriptedInterpreter(observations=[[{"targetNodeId": "0-1", "method": "fill"}]])
        session = make_session(driver, interpreter, settings)

        with pytest.raises(InvalidProposal):
            await session.observe("Find inputs")

    @pytest.mark.asyncio
    async def test_act_on_observed_action_skips_interpreter(self, driver, fake_page, settings, ids):
        interpreter = ScriptedInterpreter(observations=[[
            {"targetNodeId": ids["send"], "description": "Send", "method": "click"},
        ]])
        session = make_session(driver, interpreter, settings)
        observed = await session.observe("Find the send button")

        outcome = await session.act(observed[0])

        assert outcome.success
        assert session.interpreter_calls == 1
        assert driver.calls_to("click")[0].args[0] is fake_page.send

    @pytest.mark.asyncio
    async def test_act_on_proposal_skips_interpreter(self, driver, fake_page, settings, ids):
        session = make_session(driver, ScriptedInterpreter(), settings)

        outcome = await session.act(
            ActionProposal(targetNodeId=ids["message"], method="fill", arguments=["Hi"])
        )

        assert outcome.success
        assert fake_page.message.value == "Hi"
        assert session.interpreter_calls == 0

    @pytest.mark.asyncio
    async def test_returned_proposal_on_changed_page_is_not_applied(self, driver, fake_page, settings, ids):
        """An inserted element shifts node ids, so the old id must not be reused."""
        interpreter = ScriptedInterpreter(observations=[[
            {"targetNodeId": ids["cancel"], "description": "Cancel", "method": "click"},
        ]])
        session = make_session(driver, interpreter, settings)
        observed = await session.observe("Find the cancel button")
        fake_page.heading.parent.insert(0, FakeElement("span", "Promo"))

        outcome = await session.act(observed[0].proposal)

        assert outcome.failure == FailureKind.UNRESOLVABLE
        assert isinstance(outcome.error, SnapshotMismatch)
        assert outcome.needs_reobservation
        assert driver.calls_to("click") == []

    @pytest.mark.asyncio
    async def test_returned_proposal_on_unchanged_page(self, driver, fake_page, settings, ids):
        interpreter = ScriptedInterpreter(observations=[[
            {"targetNodeId": ids["cancel"], "description": "Cancel", "method": "click"},
        ]])
        session = make_session(driver, interpreter, settings)
        observed = await session.observe("Find the cancel button")

        outcome = await session.act(observed[0].proposal)

        assert outcome.success
        assert observed[0].proposal.snapshot_version == session.last_snapshot.version
        assert driver.calls_to("click")[0].args[0] is fake_page.cancel

    @pytest.mark.asyncio
    async def test_observed_action_follows_its_locator_on_changed_page(self, driver, fake_page, settings, ids):
        interpreter = ScriptedInterpreter(observations=[[
            {"targetNodeId": ids["cancel"], "description": "Cancel", "method": "click"},
        ]])
        session = make_session(driver, interpreter, settings)
        observed = await session.observe("Find the cancel button")
        fake_page.heading.parent.insert(0, FakeElement("span", "Promo"))

        outcome = await session.act(observed[0])

        assert outcome.success
        assert driver.calls_to("click")[0].args[0] is fake_page.cancel

    @pytest.mark.asyncio
    async def test_observe_rejects_unknown_key(self, driver, settings):
        interpreter = ScriptedInterpreter(observations=[[
            {"targetNodeId": "0-0", "description": "Submit", "method": "press", "arguments": ["Hyper"]},
        ]])
        session = make_session(driver, interpreter, settings)

        with pytest.raises(InvalidProposal) as exc_info:
            await session.observe("Find ways to submit")
        assert "Hyper" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_proposal_touches_nothing(self, driver, settings, ids):
        session = make_session(driver, ScriptedInterpreter(), settings)

        outcome = await session.act(ActionProposal(targetNodeId=ids["message"], method="fill"))

        assert isinstance(outcome, ActionOutcome)
        assert outcome.failure == FailureKind.INVALID_PROPOSAL
        assert driver.calls == []

    @pytest.mark.asyncio
    async def test_observed_action_to_dict(self, snapshot, ids):
        proposal = ActionProposal(targetNodeId=ids["send"], method="click")
        data = ObservedAction(proposal).to_dict()

        assert data == {"proposal": proposal.to_payload(), "locator": None}


class TestExtract:
    """Test extract()."""

    @pytest.mark.asyncio
    async def test_extract_price(self, driver, settings):
        interpreter = ScriptedInterpreter(extractions=[{"price": "19.99"}])
        session = make_session(driver, interpreter, settings)

        data = await session.extract("Get the price", {"price": "string"})

        assert data == {"price": "19.99"}
        assert session.get_stats()["interpreter_calls"] == 1

    @pytest.mark.asyncio
    async def test_extract_wrong_kind(self, driver, settings):
        interpreter = ScriptedInterpreter(extractions=[{"price": 19.99}])
        session = make_session(driver, interpreter, settings)

        with pytest.raises(SchemaMismatch):
            await session.extract("Get the price", {"price": "string"})
