"""
Writers that read a product, think, and save it back.

A writer's control flow is always: get -> think -> save. ``run_race`` starts
several writers on one product, releases them together through a start latch
so their think times overlap, and waits on a completion latch before reading
the final state.

``update_with_retry`` is the caller-side answer to a VersionConflictError:
re-read, recompute against the fresh version and save again.
"""
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from inventorylock.errors import NotFoundError, StoreError, VersionConflictError
from inventorylock.latch import CountDownLatch
from inventorylock.models.product import Product
from inventorylock.store.adapter import ProductStore

logger = logging.getLogger(__name__)

ThinkTime = Union[float, Tuple[float, float]]

DEFAULT_WRITER_NAMES = ("Alice", "Bob", "Carol", "Dave", "Erin", "Frank", "Grace", "Heidi")


def think(think_time: ThinkTime) -> float:
    """
    Sleep for the simulated computation time.

    Args:
        think_time: Fixed seconds, or a (low, high) range sampled uniformly

    Returns:
        The number of seconds slept
    """
    if isinstance(think_time, tuple):
        seconds = random.uniform(*think_time)
    else:
        seconds = float(think_time)
    if seconds > 0:
        time.sleep(seconds)
    return seconds


@dataclass
class WriterOutcome:
    """What happened to one writer's attempt."""
    name: str
    stock: int
    succeeded: bool = False
    read: Optional[Product] = None
    record: Optional[Product] = None
    error: Optional[Exception] = None

    @property
    def conflicted(self) -> bool:
        return isinstance(self.error, VersionConflictError)


class Writer:
    """
    One read-think-save cycle against a store.

    The writer sets ``stock`` on the record it read and saves it. With a
    versioned store the record still carries the version observed at read
    time, which is what the store checks.
    """

    def __init__(self, name: str, store: ProductStore, product_id: UUID, stock: int,
                 think_time: ThinkTime = 0.0):
        self.name = name
        self.store = store
        self.product_id = product_id
        self.stock = stock
        self.think_time = think_time
        self.outcome = WriterOutcome(name=name, stock=stock)

    def run(
        self,
        start: Optional[CountDownLatch] = None,
        done: Optional[CountDownLatch] = None,
        reads: Optional[CountDownLatch] = None,
    ) -> WriterOutcome:
        """
        Perform the cycle, never raising.

        Args:
            start: Awaited before reading
            done: Counted down once the writer finished, whatever the outcome
            reads: Counted down after reading and then awaited, so every writer
                sharing it has read before any of them starts thinking
        """
        counted_read = False
        try:
            if start is not None:
                start.await_()

            current = self.store.get(self.product_id)
            self.outcome.read = current
            logger.info(
                f"{self.name} read product {self.product_id} "
                f"with stock {current.stock} and version {current.version}"
            )

            if reads is not None:
                counted_read = True
                reads.count_down()
                reads.await_()

            think(self.think_time)

            saved = self.store.save(current.with_stock(self.stock))
            self.outcome.succeeded = True
            self.outcome.record = saved
            logger.info(f"{self.name} updated stock to {saved.stock} (version {saved.version})")

        except VersionConflictError as e:
            logger.warning(f"{self.name} failed with optimistic lock: {e}")
            self.outcome.error = e
        except (NotFoundError, StoreError) as e:
            logger.error(f"{self.name} could not update product: {e}")
            self.outcome.error = e
        except Exception as e:
            logger.exception(f"{self.name} failed unexpectedly")
            self.outcome.error = e
        finally:
            if reads is not None and not counted_read:
                reads.count_down()
            if done is not None:
                done.count_down()

        return self.outcome


@dataclass
class RaceResult:
    """Outcomes of a race plus the product's state once every writer finished."""
    outcomes: List[WriterOutcome] = field(default_factory=list)
    initial: Optional[Product] = None
    final: Optional[Product] = None

    @property
    def successes(self) -> List[WriterOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def conflicts(self) -> List[WriterOutcome]:
        return [o for o in self.outcomes if o.conflicted]

    @property
    def failures(self) -> List[WriterOutcome]:
        return [o for o in self.outcomes if not o.succeeded]


def writer_names(count: int) -> List[str]:
    """Friendly thread names, falling back to numbered writers."""
    return [
        DEFAULT_WRITER_NAMES[i] if i < len(DEFAULT_WRITER_NAMES) else f"Writer-{i + 1}"
        for i in range(count)
    ]


def run_race(
    store: ProductStore,
    product_id: UUID,
    stocks: Sequence[int],
    think_time: ThinkTime = 0.0,
    names: Optional[Sequence[str]] = None,
    timeout: Optional[float] = 30.0,
    align_reads: bool = False,
) -> RaceResult:
    """
    Race one writer per entry of ``stocks`` on a single product.

    Args:
        store: Store every writer uses
        product_id: Product all writers update
        stocks: Stock value each writer saves
        think_time: Delay between each writer's read and save
        names: Writer/thread names (defaults to Alice, Bob, ...)
        timeout: Seconds to wait for all writers to finish
        align_reads: Hold every writer after its read until all have read, so
            they are guaranteed to observe the same state

    Raises:
        TimeoutError: If the writers do not finish in time
    """
    names = list(names) if names is not None else writer_names(len(stocks))
    if len(names) != len(stocks):
        raise ValueError("Need exactly one name per writer")

    result = RaceResult(initial=store.get(product_id))
    start = CountDownLatch(1)
    done = CountDownLatch(len(stocks))
    reads = CountDownLatch(len(stocks)) if align_reads else None

    writers = [Writer(name, store, product_id, stock, think_time) for name, stock in zip(names, stocks)]
    threads = [
        threading.Thread(target=writer.run, args=(start, done, reads), name=writer.name, daemon=True)
        for writer in writers
    ]
    for thread in threads:
        thread.start()

    logger.debug(f"Releasing {len(writers)} writers on product {product_id}")
    start.count_down()
    if not done.await_(timeout):
        raise TimeoutError(f"{done.count} of {len(writers)} writers still running after {timeout}s")
    # done is counted down in each writer's finally block, so only the thread exit remains
    for thread in threads:
        thread.join()

    result.outcomes = [writer.outcome for writer in writers]
    result.final = store.get(product_id)
    logger.info(
        f"Race on product {product_id} finished: {len(result.successes)} succeeded, "
        f"{len(result.conflicts)} conflicted, final stock {result.final.stock}"
    )
    return result


def update_with_retry(
    store: ProductStore,
    product_id: UUID,
    mutate: Callable[[Product], Product],
    retries: int = 1,
) -> Product:
    """
    Read, apply ``mutate`` and save, re-reading on version conflicts.

    Args:
        store: Store to update
        product_id: Product to update
        mutate: Computes the new record from the current one
        retries: Additional attempts after the first conflict

    Raises:
        VersionConflictError: If every attempt conflicted
    """
    attempt = 0
    while True:
        current = store.get(product_id)
        try:
            return store.save(mutate(current))
        except VersionConflictError as e:
            if attempt >= retries:
                raise
            attempt += 1
            logger.info(f"Retrying update of product {product_id} after conflict ({attempt}/{retries}): {e}")
