import anyio
import pytest

from app.core.concurrency import KeyedLock


@pytest.mark.anyio
async def test_same_key_runs_one_at_a_time():
    locks = KeyedLock()
    events: list[str] = []

    async def worker(name: str):
        async with locks.hold(("c1", "anon_1")):
            events.append(f"{name}-in")
            await anyio.sleep(0.01)
            events.append(f"{name}-out")

    async with anyio.create_task_group() as tg:
        tg.start_soon(worker, "a")
        tg.start_soon(worker, "b")

    assert events[0].endswith("-in") and events[1].endswith("-out")
    assert events[2].endswith("-in") and events[3].endswith("-out")
    assert len(locks) == 0


@pytest.mark.anyio
async def test_different_keys_do_not_block():
    locks = KeyedLock()

    async with locks.hold("a"):
        with anyio.fail_after(1):
            async with locks.hold("b"):
                assert len(locks) == 2

    assert len(locks) == 0


@pytest.mark.anyio
async def test_key_released_after_error():
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        async with locks.hold("a"):
            raise RuntimeError("boom")

    assert len(locks) == 0
