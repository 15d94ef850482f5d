import asyncio

from lms_core.core.locks import KeyedLockRegistry


def test_same_key_is_serialized_and_released():
    locks = KeyedLockRegistry()
    events = []

    async def worker(name):
        async with locks.hold(("lms_school_a", "module-1")):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    async def scenario():
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(scenario())
    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert len(locks) == 0


def test_different_keys_do_not_block_each_other():
    locks = KeyedLockRegistry()

    async def scenario():
        async with locks.hold("module-1"):
            # would deadlock if keys shared a lock
            async with locks.hold("module-2"):
                return len(locks)

    assert asyncio.run(scenario()) == 2
    assert len(locks) == 0
