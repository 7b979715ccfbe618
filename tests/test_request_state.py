"""RequestStateMachine transitions, subscriptions, races and cancellation."""

import asyncio

import pytest
from pydantic import ValidationError

from bodyvantage.domain import LifecycleEvent, Operation
from bodyvantage.providers import BackendServiceError
from bodyvantage.schemas import RequestState
from bodyvantage.services import RequestStateMachine, reduce_request_state


class TestRequestStateModel:

    def test_default_is_idle(self):
        state = RequestState()
        assert state.status == "idle"
        assert state.payload is None
        assert state.error is None

    def test_succeeded_requires_payload(self):
        with pytest.raises(ValidationError):
            RequestState(status="succeeded")

    def test_failed_requires_error(self):
        with pytest.raises(ValidationError):
            RequestState(status="failed")

    def test_failed_cannot_carry_payload(self):
        with pytest.raises(ValidationError):
            RequestState(status="failed", payload=[1], error="x")

    def test_pending_carries_nothing(self):
        with pytest.raises(ValidationError):
            RequestState(status="pending", error="left over")


class TestTransitions:

    def test_unknown_key_reads_idle(self):
        machine = RequestStateMachine()
        assert machine.get("never-used").status == "idle"

    def test_begin_then_fail(self):
        machine = RequestStateMachine()
        machine.begin("k")
        machine.fail("k", "x")
        state = machine.get("k")
        assert state.status == "failed"
        assert state.error == "x"
        assert state.payload is None

    def test_begin_after_failure_clears_error(self):
        machine = RequestStateMachine()
        machine.begin("k")
        machine.fail("k", "x")
        machine.begin("k")
        state = machine.get("k")
        assert state.status == "pending"
        assert state.error is None
        assert state.payload is None

    def test_begin_after_success_discards_payload(self):
        machine = RequestStateMachine()
        machine.begin("k")
        machine.succeed("k", ["a"])
        machine.begin("k")
        assert machine.get("k") == RequestState(status="pending")

    def test_succeed_without_begin_overwrites(self):
        machine = RequestStateMachine()
        machine.succeed("k", {"ok": 1})
        assert machine.get("k").payload == {"ok": 1}

    def test_succeed_with_no_body_stores_true(self):
        machine = RequestStateMachine()
        machine.begin("delete")
        machine.succeed("delete", None)
        state = machine.get("delete")
        assert state.succeeded
        assert state.payload is True

    def test_fail_with_empty_message_gets_generic_text(self):
        machine = RequestStateMachine()
        machine.fail("k", "")
        assert machine.get("k").error == "Request failed."

    def test_reset_returns_to_idle(self):
        machine = RequestStateMachine()
        machine.begin("k")
        machine.succeed("k", [1, 2])
        machine.reset("k")
        assert machine.get("k").status == "idle"
        assert machine.get("k").payload is None

    def test_operation_enum_and_string_share_key(self):
        machine = RequestStateMachine()
        machine.begin(Operation.PROFILES)
        assert machine.get("profiles").loading

    def test_errors_stay_local_to_their_key(self):
        machine = RequestStateMachine()
        machine.begin("a")
        machine.succeed("a", [1])
        machine.begin("b")
        machine.fail("b", "boom")
        assert machine.get("a").succeeded
        assert machine.get("a").payload == [1]

    def test_reducer_is_pure(self):
        before = RequestState.failure("x")
        after = reduce_request_state(before, LifecycleEvent.BEGIN)
        assert before.status == "failed"
        assert after.status == "pending"

    def test_snapshot_is_a_copy(self):
        machine = RequestStateMachine()
        machine.begin("k")
        snap = machine.snapshot()
        machine.succeed("k", 1)
        assert snap["k"].status == "pending"


class TestSubscriptions:

    def test_subscriber_sees_every_state(self):
        machine = RequestStateMachine()
        seen: list[str] = []
        machine.subscribe("k", lambda s: seen.append(s.status))
        machine.begin("k")
        machine.fail("k", "x")
        machine.reset("k")
        assert seen == ["pending", "failed", "idle"]

    def test_unsubscribe_stops_updates(self):
        machine = RequestStateMachine()
        seen: list[str] = []
        unsubscribe = machine.subscribe("k", lambda s: seen.append(s.status))
        machine.begin("k")
        unsubscribe()
        machine.succeed("k", 1)
        assert seen == ["pending"]

    def test_subscriber_only_sees_its_key(self):
        machine = RequestStateMachine()
        seen: list[str] = []
        machine.subscribe("k", lambda s: seen.append(s.status))
        machine.begin("other")
        assert seen == []

    def test_table_subscriber_sees_keys(self):
        machine = RequestStateMachine()
        seen: list[tuple[str, str]] = []
        machine.subscribe_all(lambda k, s: seen.append((k, s.status)))
        machine.begin(Operation.USERS)
        assert seen == [("users", "pending")]


class TestSameKeyRace:

    def test_last_completion_wins_by_default(self):
        machine = RequestStateMachine()
        first = machine.begin("k")
        second = machine.begin("k")
        assert machine.succeed("k", "newer", token=second)
        assert machine.succeed("k", "older", token=first)
        assert machine.get("k").payload == "older"

    def test_stale_completion_dropped_when_enabled(self):
        machine = RequestStateMachine(discard_stale_completions=True)
        first = machine.begin("k")
        second = machine.begin("k")
        machine.succeed("k", "newer", token=second)
        assert machine.fail("k", "older failed", token=first) is False
        assert machine.get("k").payload == "newer"

    def test_untokened_completion_always_applies(self):
        machine = RequestStateMachine(discard_stale_completions=True)
        machine.begin("k")
        machine.begin("k")
        assert machine.succeed("k", "x")


class TestRun:

    @pytest.mark.asyncio
    async def test_run_success(self):
        machine = RequestStateMachine()

        async def op():
            return ["p1"]

        state = await machine.run("k", op)
        assert state.succeeded
        assert state.payload == ["p1"]

    @pytest.mark.asyncio
    async def test_run_flattens_backend_error(self):
        machine = RequestStateMachine()

        async def op():
            raise BackendServiceError("Profile not found")

        state = await machine.run("k", op)
        assert state.failed
        assert state.error == "Profile not found"

    @pytest.mark.asyncio
    async def test_run_unexpected_error_fails_and_propagates(self):
        machine = RequestStateMachine()

        async def op():
            raise KeyError("profiles")

        with pytest.raises(KeyError):
            await machine.run("k", op)
        assert machine.get("k").failed

    @pytest.mark.asyncio
    async def test_pending_while_in_flight(self):
        machine = RequestStateMachine()
        gate = asyncio.Event()

        async def op():
            await gate.wait()
            return 1

        task = asyncio.create_task(machine.run("k", op))
        await asyncio.sleep(0)
        assert machine.get("k").loading
        gate.set()
        await task
        assert machine.get("k").succeeded

    @pytest.mark.asyncio
    async def test_result_after_teardown_is_not_applied(self):
        machine = RequestStateMachine()
        gate = asyncio.Event()

        async def op():
            await gate.wait()
            return "late"

        async with machine.scope() as token:
            task = asyncio.create_task(machine.run("k", op, cancel=token))
            await asyncio.sleep(0)
        assert token.cancelled
        gate.set()
        await task
        assert machine.get("k").status == "pending"

    @pytest.mark.asyncio
    async def test_cancelled_scope_does_not_start(self):
        machine = RequestStateMachine()
        calls: list[int] = []

        async def op():
            calls.append(1)
            return 1

        async with machine.scope() as token:
            pass
        await machine.run("k", op, cancel=token)
        assert calls == []
        assert machine.get("k").status == "idle"
