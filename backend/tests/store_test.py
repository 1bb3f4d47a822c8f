import random
import threading

import pytest

from courtqueue.errors import InvariantViolation, ValidationError
from courtqueue.matchmaker import auto_pick
from courtqueue.models import CourtSlot, Player, initial_state, replace_state
from courtqueue.mutators import add_player, batch_add_players, dequeue
from courtqueue.store import SessionStore


@pytest.fixture
def store():
    return SessionStore(default_courts=3)


def test_read_initializes_once(store):
    assert store.version == 0
    state = store.read()
    assert state == initial_state(3)
    assert store.version == 1
    assert store.updated_at is not None
    assert store.read() is state
    assert store.version == 1


def test_default_courts_from_config(monkeypatch):
    from courtqueue import store as store_module

    monkeypatch.setattr(
        store_module, "get_config", lambda: type("Config", (), {"default_courts": 5})()
    )
    assert SessionStore().read().courts == 5


def test_commit_is_last_writer_wins(store):
    store.read()
    first = add_player(initial_state(3), "A", "new").state
    second = add_player(initial_state(3), "B", "new").state
    assert store.commit(first)
    assert store.commit(second)
    assert store.read() == second
    assert store.version == 3


def test_commit_with_stale_version_conflicts(store):
    version = store.version
    store.read()
    assert not store.commit(add_player(initial_state(3), "A", "new").state, expected_version=version)
    assert store.read() == initial_state(3)
    assert store.commit(add_player(initial_state(3), "A", "new").state, expected_version=store.version)


def test_commit_rejects_inconsistent_state(store):
    players = [Player(f"p{i}", "P", "new") for i in range(3)]
    broken = replace_state(initial_state(3), players=players, games=[CourtSlot(1, players), CourtSlot(2), CourtSlot(3)])
    with pytest.raises(InvariantViolation):
        store.commit(broken)
    assert store.version == 0


def test_apply_commits_only_applied_results(store):
    result = store.apply(add_player, "Mark", "new")
    assert result.applied
    assert store.version == 2
    assert [p.name for p in store.read().players] == ["Mark"]

    result = store.apply(dequeue, "nobody")
    assert not result.applied
    assert store.version == 2

    result = store.apply(add_player, "Mark", "pro")
    assert result.error is not None
    assert store.version == 2


def test_apply_auto_pick(store):
    store.apply(batch_add_players, "A, new\nB, new\nC, beginner\nD, beginner")
    version = store.version
    result = store.apply(auto_pick, random.Random(0))
    assert result.picked == 4
    assert store.version == version + 1
    assert len(store.read().queue) == 4

    result = store.apply(auto_pick, random.Random(0))
    assert result.picked == 0
    assert store.version == version + 1


def test_apply_serializes_concurrent_writers(store):
    def writer(n):
        for i in range(50):
            store.apply(add_player, f"T{n}-{i}", "intermediate")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    players = store.read().players
    assert len(players) == 200
    assert len({p.id for p in players}) == 200
    assert store.version == 201


def test_default_court_count_out_of_range_is_rejected():
    store = SessionStore(default_courts=9)
    with pytest.raises(ValidationError):
        store.read()
    assert store.version == 0


def test_commit_rejects_court_count_out_of_range(store):
    state = replace_state(initial_state(6), courts=7, games=[CourtSlot(i + 1) for i in range(7)])
    with pytest.raises(InvariantViolation):
        store.commit(state)


def test_snapshot_is_consistent_under_concurrent_writers(store):
    done = threading.Event()

    def writer():
        for i in range(200):
            store.apply(add_player, f"W{i}", "new")
        done.set()

    t = threading.Thread(target=writer)
    t.start()
    snapshots = []
    while not done.is_set():
        snapshots.append(store.snapshot())
    t.join()
    snapshots.append(store.snapshot())

    # версия 1 — инициализация, дальше каждая запись добавляет одного игрока
    for state, version, updated_at in snapshots:
        assert len(state.players) == version - 1
        assert updated_at is not None
    assert snapshots[-1][1] == 201
