import threading

import pytest

from order_board.store import Order, OrderStatus, OrderStore


def test_create_assigns_increasing_ids():
    s = OrderStore()
    ids = [s.create().id for _ in range(5)]
    assert ids == [1, 2, 3, 4, 5]
    assert all(o.status is OrderStatus.WAITING for o in s.snapshot())


def test_advance_waiting_then_calling_then_removed():
    s = OrderStore()
    s.create()

    updated = s.advance(1)
    assert updated == Order(id=1, status=OrderStatus.CALLING)
    assert s.snapshot() == (Order(id=1, status=OrderStatus.CALLING),)

    assert s.advance(1) is None
    assert s.snapshot() == ()

    with pytest.raises(KeyError):
        s.advance(1)


def test_advance_keeps_position():
    s = OrderStore()
    for _ in range(3):
        s.create()
    s.advance(2)
    assert [(o.id, o.status.value) for o in s.snapshot()] == [
        (1, "waiting"),
        (2, "calling"),
        (3, "waiting"),
    ]


def test_snapshot_is_a_copy():
    s = OrderStore()
    s.create()
    snap = s.snapshot()
    s.create()
    assert len(snap) == 1
    assert len(s) == 2


def test_reset_keeps_counter_by_default():
    s = OrderStore()
    s.create()
    s.create()
    s.reset()
    assert s.snapshot() == ()
    assert s.create().id == 3


def test_reset_can_restart_counter():
    s = OrderStore(restart_ids_on_reset=True)
    s.create()
    s.create()
    s.reset()
    assert s.create().id == 1


def test_concurrent_creates_never_share_an_id():
    s = OrderStore()
    n_threads = 8
    per_thread = 50
    barrier = threading.Barrier(n_threads)
    results: list[list[int]] = [[] for _ in range(n_threads)]

    def worker(i: int) -> None:
        barrier.wait()
        for _ in range(per_thread):
            results[i].append(s.create().id)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    all_ids = [i for r in results for i in r]
    assert sorted(all_ids) == list(range(1, n_threads * per_thread + 1))
    # Each thread saw its own ids in increasing order.
    for r in results:
        assert r == sorted(r)
    # Snapshot order is creation order.
    assert [o.id for o in s.snapshot()] == list(range(1, n_threads * per_thread + 1))


def test_atomic_holds_the_lock_across_calls():
    s = OrderStore()
    with s.atomic():
        order = s.create()
        assert s.snapshot() == (order,)

    started = threading.Event()
    created = []

    def other() -> None:
        started.set()
        created.append(s.create())

    with s.atomic():
        t = threading.Thread(target=other)
        t.start()
        started.wait()
        t.join(timeout=0.1)
        # The other thread is blocked until the lock is released.
        assert created == []
        assert len(s) == 1
    t.join()
    assert [o.id for o in created] == [2]
