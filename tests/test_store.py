"""
Tests for the reactive store and its debounced persistence.
"""

import asyncio
import time

from mindmap.edit import actions
from mindmap.store import AsyncioScheduler, DebouncedTask, MapStore, ThreadingScheduler


class TestMapStore:
    def test_set_replaces_and_notifies_once(self, sample_state):
        store = MapStore(sample_state)
        calls = []
        store.subscribe(lambda: calls.append(store.get()))
        new_state = actions.add_node(sample_state, "n")

        assert store.set(new_state) is new_state
        assert store.get() is new_state
        assert calls == [new_state]

    def test_set_accepts_updater(self, sample_state):
        store = MapStore(sample_state)
        store.set(lambda s: actions.commit_text(s, "a", "Renamed"))
        assert store.get().nodes["a"].text == "Renamed"

    def test_unsubscribe(self, sample_state):
        store = MapStore(sample_state)
        calls = []
        unsubscribe = store.subscribe(lambda: calls.append(1))
        unsubscribe()
        unsubscribe()
        store.set(sample_state)
        assert calls == []

    def test_duplicate_subscribe_fires_once(self, sample_state):
        store = MapStore(sample_state)
        calls = []

        def listener():
            calls.append(1)

        unsubscribe = store.subscribe(listener)
        store.subscribe(listener)
        store.set(sample_state)
        assert calls == [1]
        unsubscribe()
        store.set(sample_state)
        assert calls == [1]

    def test_unsubscribe_during_notify(self, sample_state):
        store = MapStore(sample_state)
        calls = []
        holder = {}

        def first():
            calls.append("first")
            holder["second"]()

        store.subscribe(first)
        holder["second"] = store.subscribe(lambda: calls.append("second"))
        store.set(sample_state)
        assert calls == ["first"]

    def test_failing_subscriber_does_not_block_others(self, sample_state):
        store = MapStore(sample_state)
        calls = []

        def broken():
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda: calls.append(1))
        store.set(sample_state)
        assert calls == [1]


class TestDebouncedPersistence:
    def test_burst_produces_single_write(self, sample_state, scheduler):
        saved = []
        store = MapStore(sample_state, persist=saved.append, scheduler=scheduler)
        for i in range(5):
            store.set(lambda s, i=i: actions.move_node(s, "a", i, i))
        assert saved == []
        assert len(scheduler.live) == 1

        scheduler.run_pending()
        assert len(saved) == 1
        assert (saved[0].nodes["a"].x, saved[0].nodes["a"].y) == (4.0, 4.0)
        assert not store.has_pending_write

    def test_notification_precedes_write(self, sample_state, scheduler):
        saved = []
        store = MapStore(sample_state, persist=saved.append, scheduler=scheduler)
        seen_saved = []
        store.subscribe(lambda: seen_saved.append(len(saved)))
        store.set(sample_state)
        assert seen_saved == [0]

    def test_flush_writes_immediately(self, sample_state, scheduler):
        saved = []
        store = MapStore(sample_state, persist=saved.append, scheduler=scheduler)
        store.set(lambda s: actions.commit_text(s, "b", "Flushed"))
        assert store.has_pending_write
        store.flush()
        assert saved[0].nodes["b"].text == "Flushed"
        assert not store.has_pending_write
        store.flush()
        assert len(saved) == 1

    def test_without_persist(self, sample_state):
        store = MapStore(sample_state)
        store.set(sample_state)
        assert not store.has_pending_write
        store.flush()

    def test_asyncio_scheduler(self, sample_state):
        async def scenario():
            saved = []
            store = MapStore(sample_state, persist=saved.append, debounce=0.01,
                             scheduler=AsyncioScheduler())
            first = store.set(lambda s: actions.commit_text(s, "a", "one"))
            last = store.set(lambda s: actions.commit_text(s, "a", "two"))
            await asyncio.sleep(0.1)
            return first, last, saved

        first, last, saved = asyncio.run(scenario())
        assert saved == [last]


class TestDebouncedTask:
    def test_cancel(self, scheduler):
        ran = []
        task = DebouncedTask(ran.append, 1.0, scheduler)
        task.schedule("x")
        task.cancel()
        scheduler.run_pending()
        assert ran == []
        assert not task.pending

    def test_last_arguments_win(self, scheduler):
        ran = []
        task = DebouncedTask(ran.append, 1.0, scheduler)
        task.schedule("x")
        task.schedule("y")
        scheduler.run_pending()
        assert ran == ["y"]

    def test_stale_timer_after_flush_does_not_run_again(self, scheduler):
        ran = []
        task = DebouncedTask(ran.append, 1.0, scheduler)
        task.schedule("x")
        handle = scheduler.handles[-1]
        task.flush()
        # a timer thread that already fired cannot be cancelled in time
        handle.callback()
        assert ran == ["x"]
        assert not task.pending

    def test_stale_timer_does_not_steal_newer_arguments(self, scheduler):
        ran = []
        task = DebouncedTask(ran.append, 1.0, scheduler)
        task.schedule("x")
        stale = scheduler.handles[-1]
        task.schedule("y")
        stale.callback()
        assert ran == []
        assert task.pending
        scheduler.run_pending()
        assert ran == ["y"]

    def test_threading_flush_race_writes_once(self):
        ran = []
        task = DebouncedTask(ran.append, 0.0, ThreadingScheduler())
        for i in range(50):
            task.schedule(i)
            task.flush()
        deadline = time.monotonic() + 2.0
        while len(ran) < 50 and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.05)
        assert sorted(ran) == list(range(50))
