# tests/test_writer.py
import threading
import uuid

import pytest

from inventorylock.errors import NotFoundError, VersionConflictError
from inventorylock.latch import CountDownLatch
from inventorylock.models.product import Product
from inventorylock.store import MemoryStore, VersionedMemoryStore
from inventorylock.writer import (
    RaceResult, Writer, WriterOutcome, run_race, think, update_with_retry, writer_names,
)


def test_think_fixed_and_range():
    assert think(0) == 0
    assert think(0.01) == pytest.approx(0.01)
    assert 0.0 <= think((0.0, 0.02)) <= 0.02


def test_writer_names():
    assert writer_names(2) == ["Alice", "Bob"]
    assert writer_names(10)[-1] == "Writer-10"


def test_writer_success_counts_down_done():
    store = VersionedMemoryStore()
    product = store.create(Product(name="Widget", stock=5))
    done = CountDownLatch(1)

    outcome = Writer("Alice", store, product.id, stock=9).run(done=done)

    assert outcome.succeeded
    assert outcome.read.version == 0
    assert outcome.record.version == 1
    assert outcome.record.stock == 9
    assert done.count == 0


def test_writer_captures_not_found():
    store = VersionedMemoryStore()
    done = CountDownLatch(1)
    reads = CountDownLatch(1)

    outcome = Writer("Alice", store, uuid.uuid4(), stock=1).run(done=done, reads=reads)

    assert not outcome.succeeded
    assert isinstance(outcome.error, NotFoundError)
    assert not outcome.conflicted
    assert done.count == 0
    assert reads.count == 0


def test_race_result_partitions_outcomes():
    result = RaceResult(outcomes=[
        WriterOutcome("Alice", 10, succeeded=True),
        WriterOutcome("Bob", 20, error=VersionConflictError(uuid.uuid4(), 0, 1)),
        WriterOutcome("Carol", 30, error=NotFoundError(uuid.uuid4())),
    ])

    assert [o.name for o in result.successes] == ["Alice"]
    assert [o.name for o in result.conflicts] == ["Bob"]
    assert [o.name for o in result.failures] == ["Bob", "Carol"]


def test_run_race_records_initial_and_final_state():
    store = VersionedMemoryStore()
    product = store.create(Product(name="Widget", stock=50))

    result = run_race(store, product.id, [10, 20], align_reads=True)

    assert result.initial == product
    assert [o.name for o in result.outcomes] == ["Alice", "Bob"]
    assert result.final.version == 1


def test_run_race_requires_a_name_per_writer():
    store = MemoryStore()
    product = store.create(Product(name="Widget"))

    with pytest.raises(ValueError):
        run_race(store, product.id, [1, 2], names=["Alice"])


def test_sequential_writers_do_not_conflict():
    store = VersionedMemoryStore()
    product = store.create(Product(name="Widget", stock=50))

    first = Writer("Alice", store, product.id, stock=10).run()
    second = Writer("Bob", store, product.id, stock=20).run()

    assert first.succeeded and second.succeeded
    assert store.get(product.id).stock == 20
    assert store.get(product.id).version == 2


def test_update_with_retry_recovers_from_one_conflict():
    store = VersionedMemoryStore()
    product = store.create(Product(name="Widget", stock=50))
    calls = []

    def take_five(current):
        calls.append(current.version)
        if len(calls) == 1:
            # Someone else commits between our read and our save
            store.save(current.with_stock(current.stock - 1))
        return current.with_stock(current.stock - 5)

    saved = update_with_retry(store, product.id, take_five, retries=1)

    assert calls == [0, 1]
    assert saved.version == 2
    assert saved.stock == 44


def test_update_with_retry_gives_up():
    store = VersionedMemoryStore()
    product = store.create(Product(name="Widget", stock=50))

    def always_interleaved(current):
        store.save(current.with_stock(current.stock - 1))
        return current.with_stock(0)

    with pytest.raises(VersionConflictError):
        update_with_retry(store, product.id, always_interleaved, retries=1)

    assert store.get(product.id).version == 2
    assert store.get(product.id).stock == 48


def test_update_with_retry_on_unversioned_store():
    store = MemoryStore()
    product = store.create(Product(name="Widget", stock=50))

    saved = update_with_retry(store, product.id, lambda p: p.with_stock(p.stock + 1))

    assert saved.stock == 51
    assert saved.version is None


def test_run_race_returns_after_writer_threads_exit():
    store = VersionedMemoryStore()
    product = store.create(Product(name="Widget", stock=50))
    names = ["Joined-1", "Joined-2", "Joined-3"]

    run_race(store, product.id, [1, 2, 3], think_time=0.02, names=names)

    assert not [t for t in threading.enumerate() if t.name in names]


def test_run_race_times_out():
    store = VersionedMemoryStore()
    product = store.create(Product(name="Widget", stock=50))

    with pytest.raises(TimeoutError):
        run_race(store, product.id, [1], think_time=0.5, timeout=0.05)
