from __future__ import annotations

import asyncio
import json
import time

import pytest

from models.prompt_models import DEFAULT_TITLE, OutcomeKind
from services.broker.observer_registry import ObserverRegistry
from services.broker.prompt_broker import DEFAULT_BROKER_TIMEOUT, PromptBroker
from services.errors import NoActivePromptError, PromptConflictError


async def wait_until_active(broker: PromptBroker, timeout: float = 1.0) -> None:
    deadline = time.monotonic() + timeout
    while broker.active_request is None:
        if time.monotonic() > deadline:
            raise AssertionError("prompt never became active")
        await asyncio.sleep(0.001)


@pytest.mark.asyncio
async def test_trigger_returns_submitted_answer() -> None:
    broker = PromptBroker()
    task = asyncio.create_task(broker.trigger(broker.new_request("Name?", "Q", 5000)))
    await wait_until_active(broker)

    broker.submit("Ada")
    outcome = await asyncio.wait_for(task, timeout=1)

    assert outcome.kind is OutcomeKind.ANSWERED
    assert outcome.text == "Ada"
    assert broker.active_request is None


@pytest.mark.asyncio
async def test_second_trigger_conflicts_while_first_is_active() -> None:
    broker = PromptBroker()
    first = asyncio.create_task(broker.trigger(broker.new_request("one", "Q", 5000)))
    await wait_until_active(broker)

    with pytest.raises(PromptConflictError, match="Another prompt is already active"):
        await broker.trigger(broker.new_request("two", "Q", 5000))

    broker.submit("done")
    assert (await first).text == "done"


@pytest.mark.asyncio
async def test_concurrent_triggers_activate_at_most_one() -> None:
    broker = PromptBroker()
    triggers = [broker.trigger(broker.new_request(f"p{i}", "Q", 2000)) for i in range(10)]

    async def answer_when_active() -> None:
        await wait_until_active(broker)
        broker.submit("only")

    results = await asyncio.gather(*triggers, answer_when_active(), return_exceptions=True)
    outcomes = results[:10]

    answered = [r for r in outcomes if not isinstance(r, Exception)]
    conflicts = [r for r in outcomes if isinstance(r, PromptConflictError)]
    assert len(answered) == 1
    assert answered[0].text == "only"
    assert len(conflicts) == 9


@pytest.mark.asyncio
async def test_only_first_of_concurrent_submissions_is_accepted() -> None:
    broker = PromptBroker()
    task = asyncio.create_task(broker.trigger(broker.new_request("pick", "Q", 5000)))
    await wait_until_active(broker)

    accepted, rejected = [], []
    for answer in ("first", "second", "third"):
        try:
            broker.submit(answer)
            accepted.append(answer)
        except PromptConflictError:
            rejected.append(answer)

    outcome = await task
    assert accepted == ["first"]
    assert rejected == ["second", "third"]
    assert outcome.text == "first"


@pytest.mark.asyncio
async def test_trigger_times_out_without_submission() -> None:
    broker = PromptBroker()
    started = time.monotonic()

    outcome = await broker.trigger(broker.new_request("Name?", "Q", 50))

    elapsed = time.monotonic() - started
    assert outcome.kind is OutcomeKind.TIMED_OUT
    assert outcome.error == "Prompt timed out"
    assert 0.04 <= elapsed < 1.0
    assert broker.active_request is None


@pytest.mark.asyncio
async def test_submission_after_timeout_finds_no_active_prompt() -> None:
    broker = PromptBroker()
    await broker.trigger(broker.new_request("Name?", "Q", 20))

    with pytest.raises(NoActivePromptError):
        broker.submit("too late")


def test_submit_without_any_prompt_is_rejected() -> None:
    broker = PromptBroker()
    with pytest.raises(NoActivePromptError, match="No active prompt"):
        broker.submit("hello")


@pytest.mark.asyncio
async def test_new_prompt_allowed_once_previous_resolved() -> None:
    broker = PromptBroker()
    await broker.trigger(broker.new_request("first", "Q", 10))

    task = asyncio.create_task(broker.trigger(broker.new_request("second", "Q", 5000)))
    await wait_until_active(broker)
    broker.submit("ok")

    assert (await task).kind is OutcomeKind.ANSWERED


@pytest.mark.asyncio
async def test_late_observer_receives_active_prompt_immediately() -> None:
    broker = PromptBroker()
    task = asyncio.create_task(broker.trigger(broker.new_request("Name?", "Q", 5000)))
    await wait_until_active(broker)

    session = broker.connect("late-tab")
    message = await session.receive(timeout=0.1)

    assert json.loads(message) == {"type": "prompt", "prompt": "Name?", "title": "Q"}
    broker.submit("x")
    await task


@pytest.mark.asyncio
async def test_observer_connecting_while_idle_gets_nothing() -> None:
    broker = PromptBroker()
    session = broker.connect("tab")

    with pytest.raises(asyncio.TimeoutError):
        await session.receive(timeout=0.02)


@pytest.mark.asyncio
async def test_timeout_broadcasts_close_notification() -> None:
    broker = PromptBroker()
    session = broker.connect("tab")

    await broker.trigger(broker.new_request("Name?", "Q", 20))

    assert json.loads(await session.receive(timeout=0.1))["type"] == "prompt"
    assert json.loads(await session.receive(timeout=0.1)) == {"type": "close", "reason": "timeout"}


@pytest.mark.asyncio
async def test_answer_broadcasts_close_notification() -> None:
    broker = PromptBroker()
    session = broker.connect("tab")
    task = asyncio.create_task(broker.trigger(broker.new_request("Name?", "Q", 5000)))
    await wait_until_active(broker)

    broker.submit("Ada")
    await task

    assert json.loads(await session.receive(timeout=0.1))["type"] == "prompt"
    assert json.loads(await session.receive(timeout=0.1)) == {"type": "close", "reason": "answered"}


@pytest.mark.asyncio
async def test_saturated_observer_does_not_block_trigger_or_others() -> None:
    broker = PromptBroker(registry=ObserverRegistry(queue_size=1))
    stuck = broker.connect("stuck")
    stuck.offer("backlog")
    healthy = broker.connect("healthy")

    task = asyncio.create_task(broker.trigger(broker.new_request("Name?", "Q", 5000)))
    await wait_until_active(broker)

    assert json.loads(await healthy.receive(timeout=0.1))["prompt"] == "Name?"
    broker.submit("fine")
    assert (await asyncio.wait_for(task, timeout=1)).text == "fine"
    assert await stuck.receive(timeout=0.1) == "backlog"


@pytest.mark.asyncio
async def test_shutdown_fails_active_prompt_and_closes_observers() -> None:
    broker = PromptBroker()
    session = broker.connect("tab")
    task = asyncio.create_task(broker.trigger(broker.new_request("Name?", "Q", 5000)))
    await wait_until_active(broker)

    broker.shutdown()
    outcome = await asyncio.wait_for(task, timeout=1)

    assert outcome.kind is OutcomeKind.FAILED
    assert "shutting down" in outcome.error
    assert len(broker.registry) == 0
    assert session.closed


@pytest.mark.asyncio
async def test_cancelled_trigger_releases_the_prompt_slot() -> None:
    broker = PromptBroker()
    task = asyncio.create_task(broker.trigger(broker.new_request("Name?", "Q", 5000)))
    await wait_until_active(broker)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert broker.active_request is None
    with pytest.raises(NoActivePromptError):
        broker.submit("orphan")


def test_new_request_applies_defaults() -> None:
    broker = PromptBroker()
    request = broker.new_request("text", "", 0)

    assert request.title == DEFAULT_TITLE
    assert request.timeout == DEFAULT_BROKER_TIMEOUT
    assert broker.new_request("text", "T", 1500).timeout == 1.5
