import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from chatcache.core.store import Message, Role, SessionNotFoundError, SessionStore

TTL = 30 * 60


def human(text):
    return Message(role=Role.HUMAN, content=text)


def agent(text):
    return Message(role=Role.AGENT, content=text)


def test_get_does_not_create(store):
    assert store.get("missing") is None
    assert store.size() == 0


def test_get_or_create_returns_existing_session(store):
    first = store.get_or_create("abc")
    second = store.get_or_create("abc")
    assert first is second
    assert store.get("abc") is first
    assert store.size() == 1


def test_new_session_is_empty_and_stamped(store, clock):
    session = store.get_or_create("abc")
    assert session.history == []
    assert session.last_active == clock.now
    assert session.created_at == clock.now


def test_concurrent_get_or_create_creates_exactly_one_session(clock):
    store = SessionStore(ttl_seconds=TTL, max_sessions=1000, clock=clock)
    workers = 32
    barrier = threading.Barrier(workers)

    def create():
        barrier.wait()
        return store.get_or_create("shared")

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda _: create(), range(workers)))

    assert store.size() == 1
    assert all(s is results[0] for s in results)


def test_size_never_exceeds_capacity_during_burst(clock):
    store = SessionStore(ttl_seconds=TTL, max_sessions=10, clock=clock)
    observed = []
    workers = 16
    barrier = threading.Barrier(workers)

    def create(i):
        barrier.wait()
        for j in range(25):
            store.get_or_create(f"s-{i}-{j}")
            observed.append(store.size())

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(create, range(workers)))

    assert store.size() == 10
    assert max(observed) <= 10


def test_capacity_eviction_removes_oldest_last_active(clock):
    store = SessionStore(ttl_seconds=TTL, max_sessions=3, clock=clock)
    for sid in ("a", "b", "c"):
        store.get_or_create(sid)
        clock.advance(1)
    store.touch("a")
    clock.advance(1)

    store.get_or_create("d")

    assert store.get("b") is None
    assert {s.session_id for s in store.list()} == {"a", "c", "d"}


def test_capacity_eviction_ties_fall_to_insertion_order(clock):
    store = SessionStore(ttl_seconds=TTL, max_sessions=2, clock=clock)
    store.get_or_create("first")
    store.get_or_create("second")

    store.get_or_create("third")

    assert store.get("first") is None
    assert store.get("second") is not None
    assert store.get("third") is not None


def test_newly_admitted_session_survives_its_own_eviction(clock):
    store = SessionStore(ttl_seconds=TTL, max_sessions=1, clock=clock)
    store.get_or_create("old")
    clock.advance(5)

    fresh = store.get_or_create("new")

    assert store.get("new") is fresh
    assert store.get("old") is None
    assert store.size() == 1


def test_1001_sequential_sessions_keep_newest_1000(clock):
    store = SessionStore(ttl_seconds=TTL, max_sessions=1000, clock=clock)
    for i in range(1001):
        store.get_or_create(f"session-{i}")
        clock.advance(0.5)

    assert store.size() == 1000
    assert store.get("session-0") is None
    assert store.get("session-1") is not None
    assert store.get("session-1000") is not None


def test_touch_missing_session_is_silent_noop(store):
    assert store.touch("ghost") is False
    assert store.get("ghost") is None


def test_touch_never_moves_last_active_backwards(store, clock):
    store.get_or_create("abc")
    store.touch("abc", now=clock.now + 100)
    store.touch("abc", now=clock.now + 50)
    assert store.get("abc").last_active == clock.now + 100


def test_touch_defaults_to_clock(store, clock):
    store.get_or_create("abc")
    clock.advance(42)
    assert store.touch("abc") is True
    assert store.get("abc").last_active == clock.now


def test_append_preserves_order_and_grows_by_one(store):
    store.get_or_create("abc")
    messages = [human("one"), agent("two"), human("three"), human("three")]
    for expected_length, message in enumerate(messages, start=1):
        assert store.append_message("abc", message) == expected_length

    assert store.history("abc") == messages


def test_append_to_missing_session_raises(store):
    with pytest.raises(SessionNotFoundError):
        store.append_message("ghost", human("hello"))


def test_concurrent_appends_are_never_lost(store):
    store.get_or_create("abc")

    def append(i):
        store.append_message("abc", human(f"m{i}"))

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(append, range(500)))

    history = store.history("abc")
    assert len(history) == 500
    assert len({m.content for m in history}) == 500


def test_history_is_a_copy(store):
    store.get_or_create("abc")
    store.append_message("abc", human("hi"))
    snapshot = store.history("abc")
    snapshot.append(agent("not stored"))
    assert len(store.history("abc")) == 1


def test_list_reports_message_count_after_alternating_appends(store):
    store.get_or_create("abc")
    for i in range(7):
        store.append_message("abc", human(f"h{i}") if i % 2 == 0 else agent(f"a{i}"))

    (summary,) = store.list()
    assert summary.session_id == "abc"
    assert summary.message_count == 7


def test_list_is_a_point_in_time_snapshot(store):
    store.get_or_create("abc")
    listing = store.list()
    store.append_message("abc", human("later"))
    store.get_or_create("def")

    assert len(listing) == 1
    assert listing[0].message_count == 0


def test_delete_reports_whether_session_existed(store):
    store.get_or_create("abc")
    assert store.delete("abc") is True
    assert store.delete("abc") is False
    assert store.size() == 0


def test_sweep_keeps_sessions_younger_than_ttl(store, clock):
    store.get_or_create("abc")
    assert store.sweep_expired(now=clock.now + TTL - 1) == 0
    assert store.sweep_expired(now=clock.now + TTL) == 0
    assert store.get("abc") is not None


def test_sweep_removes_sessions_past_ttl(store, clock):
    store.get_or_create("stale")
    clock.advance(TTL / 2)
    store.get_or_create("fresh")
    clock.advance(TTL / 2 + 1)

    assert store.sweep_expired() == 1
    assert store.get("stale") is None
    assert store.get("fresh") is not None


def test_sweep_spares_session_touched_later_than_sweep_time(store, clock):
    store.get_or_create("abc")
    touched_at = clock.now + TTL + 10
    store.touch("abc", now=touched_at)

    assert store.sweep_expired(now=clock.now + TTL + 5) == 0
    assert store.get("abc") is not None


def test_sweep_works_across_batches(store, clock):
    for i in range(25):
        store.get_or_create(f"s{i}")
    clock.advance(TTL + 1)
    store.get_or_create("live")

    assert store.sweep_expired(batch_size=4) == 25
    assert [s.session_id for s in store.list()] == ["live"]


@pytest.mark.parametrize("ttl, max_sessions", [(0, 10), (60, 0)])
def test_rejects_non_positive_limits(ttl, max_sessions):
    with pytest.raises(ValueError):
        SessionStore(ttl_seconds=ttl, max_sessions=max_sessions)
