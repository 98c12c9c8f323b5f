# License: MIT
# Copyright © 2022 Frequenz Energy-as-a-Service GmbH

"""Tests for the asyncio util module."""

import asyncio
import datetime

import async_solipsism
import pytest

from abortable.asyncio import TaskCreator, cancel_and_await, delay


# This method replaces the event loop for all tests in the file.
@pytest.fixture
def event_loop_policy() -> async_solipsism.EventLoopPolicy:
    """Return an event loop policy that uses the async solipsism event loop."""
    return async_solipsism.EventLoopPolicy()


def test_task_creator_asyncio() -> None:
    """Test that the asyncio module is a TaskCreator."""
    assert isinstance(asyncio, TaskCreator)


async def test_task_creator_loop() -> None:
    """Test that the asyncio event loop is a TaskCreator."""
    assert isinstance(asyncio.get_event_loop(), TaskCreator)


def test_task_creator_task_group() -> None:
    """Test that the asyncio task group is a TaskCreator."""
    assert isinstance(asyncio.TaskGroup(), TaskCreator)


async def test_delay_zero() -> None:
    """Test a zero delay finishes right away."""
    loop = asyncio.get_running_loop()
    start = loop.time()
    await delay(0)
    await delay(datetime.timedelta(0))
    assert loop.time() == pytest.approx(start)


@pytest.mark.parametrize(
    "duration, seconds",
    [
        (datetime.timedelta(milliseconds=500), 0.5),
        (datetime.timedelta(seconds=3), 3.0),
        (1.5, 1.5),
        (2, 2.0),
    ],
)
async def test_delay_waits(
    duration: float | datetime.timedelta, seconds: float
) -> None:
    """Test a delay waits no less than the requested duration."""
    loop = asyncio.get_running_loop()
    start = loop.time()
    await delay(duration)
    assert loop.time() - start == pytest.approx(seconds)


@pytest.mark.parametrize("duration", [-1, -0.5, datetime.timedelta(seconds=-1)])
async def test_delay_negative(duration: float | datetime.timedelta) -> None:
    """Test a negative delay is rejected."""
    with pytest.raises(ValueError, match="can't be negative"):
        await delay(duration)


async def test_cancel_and_await_running() -> None:
    """Test a running task is cancelled and awaited."""
    task = asyncio.create_task(asyncio.sleep(10))
    await asyncio.sleep(0)
    await cancel_and_await(task)
    assert task.cancelled()


async def test_cancel_and_await_done() -> None:
    """Test a finished task is left alone."""
    task = asyncio.create_task(asyncio.sleep(0, result=1))
    await task
    await cancel_and_await(task)
    assert not task.cancelled()
    assert task.result() == 1


async def test_cancel_and_await_propagates_errors() -> None:
    """Test errors other than cancellation are propagated."""

    async def swallow_cancel() -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            raise RuntimeError("cleanup failed")  # pylint: disable=raise-missing-from

    task = asyncio.create_task(swallow_cancel())
    await asyncio.sleep(0)
    with pytest.raises(RuntimeError, match="cleanup failed"):
        await cancel_and_await(task)
