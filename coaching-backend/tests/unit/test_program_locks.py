"""
Unit tests for the in-process per-program locks
"""
import asyncio
import gc
import pytest

from coaching_engine.services.base import ProgramLocks


class TestProgramLocks:
    @pytest.mark.asyncio
    async def test_same_program_shares_a_lock_while_in_use(self):
        locks = ProgramLocks()
        lock = locks.for_program("p-1")

        assert locks.for_program("p-1") is lock
        assert locks.for_program("p-2") is not lock

    @pytest.mark.asyncio
    async def test_serializes_holders(self):
        locks = ProgramLocks()
        order = []

        async def hold(name):
            async with locks.for_program("p-1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(hold("a"), hold("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_idle_locks_are_released(self):
        locks = ProgramLocks()
        for n in range(50):
            async with locks.for_program(f"p-{n}"):
                pass
        gc.collect()

        assert locks.tracked() == 0
