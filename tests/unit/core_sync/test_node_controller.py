import asyncio

from core_models.models import Edge
from core_sync import NodeController, SyncSession
from core_sync.guard import begin_update


def _connect(store, a, b, edge_type="CONNECTED"):
    store.create_edge(Edge(id=f"{a}-{b}", from_id=a, to_id=b, type=edge_type))


def test_edit_publishes_then_writes_after_debounce(store, seed, fast_settings):
    seed(store, "f1", "feature", title="F1", duration=1)

    async def main():
        session = SyncSession("s-1", settings=fast_settings)
        ctl = NodeController(session, "f1", "feature", store)
        ctl.mount()
        events = []
        session.bus.subscribe("spy", "f1", events.append)

        assert ctl.edit("duration", 4) is True
        assert len(events) == 1
        assert store.get_node("f1").data["duration"] == 1  # not yet written

        await asyncio.sleep(0.08)
        assert store.get_node("f1").data["duration"] == 4
        assert ctl.dirty_fields == []
        assert ctl.state.in_flight is False
        await session.close()

    asyncio.run(main())
    assert store.writes == [{"node_id": "f1", "fields": ["duration"]}]


def test_repeated_edit_inside_recent_window_is_dropped(store, seed, fast_settings):
    seed(store, "f1", "feature", duration=1)

    async def main():
        session = SyncSession(settings=fast_settings)
        ctl = NodeController(session, "f1", "feature", store)
        ctl.mount()
        assert ctl.edit("duration", 2) is True
        assert ctl.edit("duration", 3) is False
        assert ctl.data["duration"] == 2
        await ctl.unmount(flush=False)

    asyncio.run(main())


def test_circular_updates_converge_within_one_cycle(store, seed, fast_settings):
    """A edits, B mirrors the value back once, A ignores the echo."""
    seed(store, "A", "feature", duration=1)
    seed(store, "B", "feature", duration=1)
    _connect(store, "A", "B")

    def mirror(ctl, event, fields):
        if "duration" in fields:
            ctl.edit("duration", event.data["duration"])

    async def main():
        session = SyncSession(settings=fast_settings)
        a = NodeController(session, "A", "feature", store, on_update=mirror)
        b = NodeController(session, "B", "feature", store, on_update=mirror)
        a.mount()
        b.mount()
        from_b = []
        session.bus.subscribe("spy", "B", from_b.append)

        a.edit("duration", 7)
        await asyncio.sleep(0.1)

        assert len(from_b) == 1
        assert b.data["duration"] == 7
        await session.close()

    asyncio.run(main())
    assert store.get_node("A").data["duration"] == 7
    assert store.get_node("B").data["duration"] == 7


def test_handler_sees_only_manifest_fields(store, seed, fast_settings):
    seed(store, "f1", "feature")
    seed(store, "t1", "team")
    _connect(store, "f1", "t1", "FEATURE_TEAM")
    received = []

    async def main():
        session = SyncSession(settings=fast_settings)
        feature = NodeController(session, "f1", "feature", store)
        team = NodeController(session, "t1", "team", store,
                              on_update=lambda c, e, f: received.append(f))
        feature.mount()
        team.mount()
        feature.edit_many({"description": "x", "teamAllocations": [{"teamId": "t1", "requestedHours": 10}]})
        feature.edit("position", {"x": 1, "y": 2})
        await session.close()

    asyncio.run(main())
    assert received == [["teamAllocations"]]


def test_backend_failure_keeps_fields_dirty_until_next_edit(store, seed, fast_settings):
    seed(store, "f1", "feature", duration=1, title="t")
    store.fail_writes = True

    async def main():
        session = SyncSession(settings=fast_settings)
        ctl = NodeController(session, "f1", "feature", store)
        ctl.mount()
        ctl.edit("duration", 9)
        await asyncio.sleep(0.06)
        assert ctl.dirty_fields == ["duration"]
        assert ctl.state.in_flight is False

        store.fail_writes = False
        ctl.edit("title", "T")
        await asyncio.sleep(0.06)
        assert ctl.dirty_fields == []
        await session.close()

    asyncio.run(main())
    node = store.get_node("f1")
    assert node.data["duration"] == 9 and node.data["title"] == "T"
    assert store.writes[0]["fields"] == ["duration", "title"]


def test_write_is_skipped_while_in_flight(store, seed, fast_settings):
    seed(store, "f1", "feature", duration=1)

    async def main():
        session = SyncSession(settings=fast_settings)
        ctl = NodeController(session, "f1", "feature", store)
        ctl.mount()
        ctl.edit("duration", 2, debounce_ms=10_000)
        begin_update(ctl.state, ["duration"])
        assert await ctl.write() is False
        assert ctl.dirty_fields == ["duration"]
        await ctl.unmount(flush=False)

    asyncio.run(main())
    assert store.writes == []


def test_unmount_flushes_pending_writes_and_unsubscribes(store, seed, fast_settings):
    seed(store, "f1", "feature", duration=1)

    async def main():
        session = SyncSession(settings=fast_settings)
        ctl = NodeController(session, "f1", "feature", store)
        ctl.mount()
        ctl.edit("duration", 3, debounce_ms=10_000)
        await ctl.unmount()
        assert session.bus.subscriptions_for("f1") == []
        assert session.scheduler.pending_keys("f1") == []
        assert "f1" not in session.states

    asyncio.run(main())
    assert store.get_node("f1").data["duration"] == 3


def test_unmount_without_flush_discards_pending_writes(store, seed, fast_settings):
    seed(store, "f1", "feature", duration=1)

    async def main():
        session = SyncSession(settings=fast_settings)
        ctl = NodeController(session, "f1", "feature", store)
        ctl.mount()
        ctl.edit("duration", 3, debounce_ms=10_000)
        await ctl.unmount(flush=False)

    asyncio.run(main())
    assert store.get_node("f1").data["duration"] == 1


def test_sessions_do_not_share_events(fast_settings):
    async def main():
        s1 = SyncSession(settings=fast_settings)
        s2 = SyncSession(settings=fast_settings)
        got = []
        s2.bus.subscribe("b", "a", got.append)
        s1.bus.publish("a", {"title": "x"})
        assert got == []

    asyncio.run(main())


def test_unexpected_store_error_clears_in_flight(store, seed, fast_settings, monkeypatch):
    seed(store, "f1", "feature", duration=1)
    real_update = store.update_node
    calls = []

    def flaky_update(node_id, partial):
        calls.append(dict(partial))
        if len(calls) == 1:
            raise RuntimeError("driver exploded")
        return real_update(node_id, partial)

    monkeypatch.setattr(store, "update_node", flaky_update)

    async def main():
        session = SyncSession(settings=fast_settings)
        ctl = NodeController(session, "f1", "feature", store)
        ctl.mount()
        ctl.edit("duration", 2)
        await asyncio.sleep(0.06)
        assert ctl.state.in_flight is False
        assert ctl.dirty_fields == ["duration"]

        await asyncio.sleep(0.1)  # outside the recent-edit window
        assert ctl.edit("duration", 3) is True
        await asyncio.sleep(0.06)
        assert ctl.dirty_fields == []
        await session.close()

    asyncio.run(main())
    assert store.get_node("f1").data["duration"] == 3
    assert len(calls) == 2


def test_closed_session_schedules_no_follow_up_write(store, seed, fast_settings, monkeypatch):
    seed(store, "f1", "feature", duration=1)
    real_update = store.update_node
    holder = {}

    def update_then_reedit(node_id, partial):
        node = real_update(node_id, partial)
        # The user edits again while the write is running.
        holder["ctl"].data["duration"] = 9
        return node

    monkeypatch.setattr(store, "update_node", update_then_reedit)

    async def main():
        session = SyncSession(settings=fast_settings)
        ctl = holder["ctl"] = NodeController(session, "f1", "feature", store)
        ctl.mount()
        ctl.edit("duration", 3, debounce_ms=10_000)
        await session.close()
        assert ctl.dirty_fields == ["duration"]
        await asyncio.sleep(0.08)  # grace window elapses after close
        assert session.closed is True
        assert session.scheduler.pending_keys() == []

    asyncio.run(main())
    assert store.writes == [{"node_id": "f1", "fields": ["duration"]}]
