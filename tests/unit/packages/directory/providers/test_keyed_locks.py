"""Unit tests for per-key store locks."""

import asyncio

import pytest

from packages.directory.providers.store.locks import KeyedLocks


@pytest.mark.asyncio
class TestKeyedLocks:
    async def test_entry_dropped_after_release(self):
        locks = KeyedLocks()

        async with locks.hold("owner-1"):
            assert len(locks) == 1

        assert len(locks) == 0

    async def test_entry_kept_while_waiters_remain(self):
        locks = KeyedLocks()
        order = []

        async def worker(name):
            async with locks.hold("owner-1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"), worker("c"))

        assert order == ["a-in", "a-out", "b-in", "b-out", "c-in", "c-out"]
        assert len(locks) == 0

    async def test_entry_dropped_when_holder_raises(self):
        locks = KeyedLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold("owner-1"):
                raise RuntimeError("boom")

        assert len(locks) == 0

    async def test_store_lock_map_does_not_grow(self, memory_store):
        for i in range(50):
            async with memory_store.billing_owner_lock(f"owner-{i}"):
                pass

        assert len(memory_store._locks) == 0
