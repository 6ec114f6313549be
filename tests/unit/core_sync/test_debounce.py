import asyncio

from core_sync.debounce import DebouncedScheduler


def test_trailing_debounce_runs_last_call_once():
    calls = []

    async def main():
        sched = DebouncedScheduler()

        def make(n):
            async def _fn():
                calls.append(n)
            return _fn

        for n in range(3):
            sched.schedule(("a", "title"), make(n), 20)
            await asyncio.sleep(0.005)
        assert sched.pending(("a", "title"))
        await asyncio.sleep(0.06)
        assert not sched.pending(("a", "title"))

    asyncio.run(main())
    assert calls == [2]


def test_keys_are_independent_and_cancel_discards():
    calls = []

    async def main():
        sched = DebouncedScheduler()

        async def a():
            calls.append("a")

        async def b():
            calls.append("b")

        sched.schedule(("n1", "title"), a, 10)
        sched.schedule(("n1", "duration"), b, 10)
        assert sched.cancel(("n1", "title")) is True
        await asyncio.sleep(0.05)

    asyncio.run(main())
    assert calls == ["b"]


def test_flush_runs_pending_work_now():
    calls = []

    async def main():
        sched = DebouncedScheduler()

        async def fn():
            calls.append("flushed")

        sched.schedule(("n1", "title"), fn, 10_000)
        sched.schedule(("n2", "title"), fn, 10_000)
        assert await sched.flush("n1") == 1
        assert sched.pending_keys() == [("n2", "title")]
        sched.close()
        assert sched.pending_keys() == []

    asyncio.run(main())
    assert calls == ["flushed"]


def test_should_skip_drops_the_fire():
    calls = []

    async def main():
        sched = DebouncedScheduler(should_skip=lambda key: key[0] == "busy")

        async def fn():
            calls.append("ran")

        sched.schedule(("busy", "title"), fn, 5)
        await asyncio.sleep(0.03)

    asyncio.run(main())
    assert calls == []


def test_failing_task_is_reported_not_raised(caplog):
    async def main():
        sched = DebouncedScheduler()

        async def boom():
            raise RuntimeError("write exploded")

        sched.schedule(("n1", "title"), boom, 5)
        await asyncio.sleep(0.03)

    asyncio.run(main())
    assert any("write exploded" in str(getattr(r, "error_message", "")) for r in caplog.records)
