import asyncio
import sys
from pathlib import Path

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from chatter.memory.locks import AgentLocks


@pytest.mark.asyncio
async def test_same_agent_is_serialized():
    locks = AgentLocks()
    order = []

    async def worker(name: str):
        async with locks.for_agent("agent-1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"), worker("c"))

    assert order == ["a-in", "a-out", "b-in", "b-out", "c-in", "c-out"]
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_other_agents_are_not_blocked():
    locks = AgentLocks()

    async with locks.for_agent("agent-1"):
        assert len(locks) == 1
        async with locks.for_agent("agent-2"):
            assert len(locks) == 2

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_is_kept_while_a_task_waits():
    locks = AgentLocks()
    entered = asyncio.Event()

    async def waiter():
        async with locks.for_agent("agent-1"):
            entered.set()

    async with locks.for_agent("agent-1"):
        task = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        assert not entered.is_set()

    await task
    assert entered.is_set()
    assert len(locks) == 0
