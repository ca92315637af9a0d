"""Tests for TrajectoryHooks and the lifecycle transition rules."""

import asyncio

import pytest

from relayhooks.foundation.config import reset_config
from relayhooks.foundation.errors import ErrorCode, InvalidTransition
from relayhooks.hooks import (
    CONTINUE,
    Abort,
    Event,
    EventKind,
    HookEmitter,
    HookRegistry,
    Retry,
)
from relayhooks.inbox import InboxFeed, InboxGate, has_messages
from relayhooks.trajectory import TrajectoryHooks, TrajectoryState, TrajectoryTracker


@pytest.fixture
def hooks() -> TrajectoryHooks:
    return TrajectoryHooks("traj-1")


class TestConstruction:
    """Registry/emitter wiring."""

    def test_defaults(self) -> None:
        hooks = TrajectoryHooks()

        assert hooks.trajectory_id
        assert hooks.emitter.registry is hooks.registry
        assert hooks.state is TrajectoryState.IDLE

    def test_emitter_only_shares_its_registry(self) -> None:
        emitter = HookEmitter(HookRegistry())
        hooks = TrajectoryHooks(emitter=emitter)

        assert hooks.registry is emitter.registry

    def test_mismatched_emitter_rejected(self) -> None:
        with pytest.raises(ValueError):
            TrajectoryHooks(registry=HookRegistry(), emitter=HookEmitter(HookRegistry()))


class TestLifecycle:
    """A well-formed run walks through the expected states."""

    @pytest.mark.asyncio
    async def test_full_run(self, hooks: TrajectoryHooks) -> None:
        assert await hooks.fire(EventKind.RUN_START) == CONTINUE
        assert hooks.state is TrajectoryState.RUNNING

        await hooks.fire(EventKind.STEP_START)
        assert hooks.state is TrajectoryState.STEPPING
        assert hooks.step_open

        await hooks.fire(EventKind.TOOL_CALL, {"tool": "grep"})
        await hooks.fire(EventKind.TOOL_RESULT, {"ok": True})
        assert hooks.state is TrajectoryState.STEPPING

        await hooks.fire(EventKind.STEP_END)
        assert hooks.state is TrajectoryState.RUNNING
        assert not hooks.step_open

        await hooks.fire(EventKind.ERROR, {"message": "flaky network"})
        assert hooks.state is TrajectoryState.ERRORING

        await hooks.fire(EventKind.STEP_START)
        await hooks.fire(EventKind.STEP_END)
        await hooks.fire(EventKind.RUN_END)
        assert hooks.state is TrajectoryState.COMPLETED

    @pytest.mark.asyncio
    async def test_run_end_closes_open_step(self, hooks: TrajectoryHooks) -> None:
        await hooks.fire(EventKind.RUN_START)
        await hooks.fire(EventKind.STEP_START)
        await hooks.fire(EventKind.RUN_END)

        assert hooks.state is TrajectoryState.COMPLETED
        assert not hooks.step_open

    @pytest.mark.asyncio
    async def test_events_carry_trajectory_and_sequence(self, hooks: TrajectoryHooks) -> None:
        seen: list[Event] = []
        hooks.on_run_start(seen.append)
        hooks.on_step_start(seen.append)

        await hooks.fire(EventKind.RUN_START, {"model": "m"})
        await hooks.fire(EventKind.STEP_START)

        assert [e.trajectory_id for e in seen] == ["traj-1", "traj-1"]
        assert [e.sequence for e in seen] == [1, 2]
        assert seen[0].payload == {"model": "m"}


class TestInvalidTransitions:
    """Out-of-order lifecycle events raise before any hook runs."""

    @pytest.mark.asyncio
    async def test_step_start_twice(self, hooks: TrajectoryHooks) -> None:
        calls: list[Event] = []
        hooks.on_step_start(calls.append)
        await hooks.fire(EventKind.RUN_START)
        await hooks.fire(EventKind.STEP_START)

        with pytest.raises(InvalidTransition) as exc_info:
            await hooks.fire(EventKind.STEP_START)

        assert exc_info.value.code is ErrorCode.TRAJECTORY_INVALID_TRANSITION
        assert exc_info.value.kind is EventKind.STEP_START
        assert len(calls) == 1
        assert hooks.state is TrajectoryState.STEPPING

    @pytest.mark.asyncio
    async def test_run_end_twice(self, hooks: TrajectoryHooks) -> None:
        await hooks.fire(EventKind.RUN_START)
        await hooks.fire(EventKind.RUN_END)

        with pytest.raises(InvalidTransition):
            await hooks.fire(EventKind.RUN_END)

    @pytest.mark.asyncio
    async def test_run_start_twice(self, hooks: TrajectoryHooks) -> None:
        await hooks.fire(EventKind.RUN_START)

        with pytest.raises(InvalidTransition):
            await hooks.fire(EventKind.RUN_START)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind",
        [EventKind.STEP_START, EventKind.TOOL_CALL, EventKind.ERROR, EventKind.RUN_END],
    )
    async def test_lifecycle_before_run_start(self, hooks: TrajectoryHooks, kind: EventKind) -> None:
        with pytest.raises(InvalidTransition) as exc_info:
            await hooks.fire(kind)

        assert exc_info.value.detail == "run not started"
        assert hooks.state is TrajectoryState.IDLE

    @pytest.mark.asyncio
    async def test_step_end_without_step(self, hooks: TrajectoryHooks) -> None:
        await hooks.fire(EventKind.RUN_START)

        with pytest.raises(InvalidTransition):
            await hooks.fire(EventKind.STEP_END)

    @pytest.mark.asyncio
    async def test_nothing_after_abort(self, hooks: TrajectoryHooks) -> None:
        hooks.on_step_start(lambda e: Abort("stop"))
        await hooks.fire(EventKind.RUN_START)
        await hooks.fire(EventKind.STEP_START)

        with pytest.raises(InvalidTransition):
            await hooks.fire(EventKind.RUN_END)

    @pytest.mark.asyncio
    async def test_stale_sequence_rejected(self, hooks: TrajectoryHooks) -> None:
        await hooks.fire(EventKind.RUN_START)
        stale = Event(kind=EventKind.STEP_START, trajectory_id="traj-1", sequence=1)

        with pytest.raises(InvalidTransition):
            await hooks.emit(stale)

    @pytest.mark.asyncio
    async def test_foreign_trajectory_rejected(self, hooks: TrajectoryHooks) -> None:
        foreign = Event(kind=EventKind.RUN_START, trajectory_id="other", sequence=1)

        with pytest.raises(InvalidTransition):
            await hooks.emit(foreign)


class TestOutcomes:
    """How emission outcomes drive the state machine."""

    @pytest.mark.asyncio
    async def test_abort_moves_to_aborted(self, hooks: TrajectoryHooks) -> None:
        hooks.on_tool_call(lambda e: Abort("shell disabled"), hook_id="policy")
        await hooks.fire(EventKind.RUN_START)

        outcome = await hooks.fire(EventKind.TOOL_CALL, {"tool": "shell"})

        assert outcome == Abort("shell disabled", hook_id="policy")
        assert hooks.state is TrajectoryState.ABORTED

    @pytest.mark.asyncio
    async def test_retry_does_not_commit(self, hooks: TrajectoryHooks) -> None:
        attempts: list[int] = []

        def flaky(event: Event):
            attempts.append(event.sequence)
            return Retry("not yet") if len(attempts) == 1 else None

        hooks.on_step_start(flaky)
        await hooks.fire(EventKind.RUN_START)

        assert await hooks.fire(EventKind.STEP_START) == Retry("not yet")
        assert hooks.state is TrajectoryState.RUNNING
        assert not hooks.step_open

        assert await hooks.fire(EventKind.STEP_START) == CONTINUE
        assert hooks.state is TrajectoryState.STEPPING
        assert attempts == [2, 3]

    @pytest.mark.asyncio
    async def test_cancelled_emission_aborts(self, hooks: TrajectoryHooks) -> None:
        hooks.on_run_start(lambda e: None)
        cancel = asyncio.Event()
        cancel.set()

        outcome = await hooks.fire(EventKind.RUN_START, cancel=cancel)

        assert outcome.cancelled
        assert hooks.state is TrajectoryState.ABORTED


class TestAwaitingInbox:
    """AWAITING_INBOX is reported while a gate holds the emission."""

    @pytest.mark.asyncio
    async def test_state_while_gate_suspended(self, hooks: TrajectoryHooks, snapshot_of) -> None:
        feed = InboxFeed()
        hooks.on_step_start(InboxGate(has_messages(), feed, timeout=5))
        await hooks.fire(EventKind.RUN_START)

        task = asyncio.create_task(hooks.fire(EventKind.STEP_START))
        await asyncio.sleep(0.02)

        assert hooks.state is TrajectoryState.AWAITING_INBOX

        feed.publish(snapshot_of("lead"))
        outcome = await asyncio.wait_for(task, timeout=1)

        assert outcome == CONTINUE
        assert hooks.state is TrajectoryState.STEPPING


class TestPhaseWrappers:
    """Typed attach methods."""

    def test_returns_unregister_handle(self, hooks: TrajectoryHooks) -> None:
        off = hooks.on_step_end(lambda e: None, hook_id="end")

        assert "end" in hooks.registry
        assert off() is True
        assert "end" not in hooks.registry

    def test_decorator_form(self, hooks: TrajectoryHooks) -> None:
        @hooks.on_tool_result(priority=-3, name="audit")
        def audit(event):
            return None

        [hook] = hooks.registry.resolve(EventKind.TOOL_RESULT)
        assert hook.handler is audit
        assert hook.priority == -3
        assert hook.label == "audit"

    def test_default_priority_from_config(self, hooks: TrajectoryHooks, monkeypatch) -> None:
        monkeypatch.setenv("RELAYHOOKS_HOOKS_DEFAULT_PRIORITY", "7")
        reset_config()

        hooks.on_error(lambda e: None, hook_id="err")

        assert hooks.registry.get("err").priority == 7

    def test_on_custom_rejects_builtin(self, hooks: TrajectoryHooks) -> None:
        with pytest.raises(ValueError):
            hooks.on_custom("step:start", lambda e: None)

    @pytest.mark.asyncio
    async def test_custom_kind_skips_lifecycle_rules(self, hooks: TrajectoryHooks) -> None:
        seen: list[Event] = []
        hooks.on_custom("memory:flush", seen.append)

        outcome = await hooks.fire("memory:flush", {"bytes": 10})

        assert outcome == CONTINUE
        assert seen[0].kind == "memory:flush"
        assert hooks.state is TrajectoryState.IDLE

    @pytest.mark.asyncio
    async def test_once_hook(self, hooks: TrajectoryHooks) -> None:
        seen: list[Event] = []
        hooks.on_step_start(seen.append, once=True)
        await hooks.fire(EventKind.RUN_START)

        await hooks.fire(EventKind.STEP_START)
        await hooks.fire(EventKind.STEP_END)
        await hooks.fire(EventKind.STEP_START)

        assert len(seen) == 1


class TestTracker:
    """TrajectoryTracker used directly."""

    def test_check_does_not_commit(self) -> None:
        tracker = TrajectoryTracker("t")
        tracker.check(Event(kind=EventKind.RUN_START, trajectory_id="t", sequence=1))

        assert tracker.state is TrajectoryState.IDLE
        assert tracker.last_sequence is None

    def test_commit_then_abort(self) -> None:
        tracker = TrajectoryTracker("t")
        tracker.commit(Event(kind=EventKind.RUN_START, trajectory_id="t", sequence=1))
        tracker.abort(Event(kind=EventKind.STEP_START, trajectory_id="t", sequence=2))

        assert tracker.state is TrajectoryState.ABORTED
        assert tracker.state.is_terminal
        assert tracker.last_sequence == 2
