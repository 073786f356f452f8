# oms/stream/adapter.py
import threading
from collections.abc import Iterable, Iterator
from typing import Any, Protocol

from oms.domain.events import MatchRecord
from oms.engine.hooks import MatcherHooks, NoopHooks, StreamHooks
from oms.engine.matcher import Matcher
from oms.policy.distance import DistanceFn
from oms.stream.queue import BackpressureQueue


class StreamClosedError(RuntimeError):
    pass


class StreamModeError(RuntimeError):
    pass


class Consumer(Protocol):
    def write(self, rec: MatchRecord) -> bool:
        """Accept one record; returning False asks the stream to pause."""

    def close(self) -> None:
        """End-of-output marker."""


class MatchingStream:
    """
    Object-mode duplex stage around a Matcher.

    Writes are pushed into the matcher; its emissions are buffered in a
    BackpressureQueue and drained either into a piped Consumer (flowing mode)
    or by read() calls (pull mode). The terminal marker is produced once end()
    has been called and every buffered record has been delivered.
    """

    def __init__(
        self,
        targets: Iterable[Any] = (),
        distance: DistanceFn | None = None,
        max_distance: float | None = None,
        *,
        emit_target_misses: bool = False,
        hooks: MatcherHooks | StreamHooks | None = None,
    ):
        self._hooks = hooks or NoopHooks()
        self.emit_target_misses = emit_target_misses
        self.matcher = Matcher(
            targets,
            distance=distance,
            max_distance=max_distance,
            on_match=self.handle_match,
            on_miss=self.handle_miss,
            hooks=self._hooks,
        )

        self._queue: BackpressureQueue[MatchRecord] = BackpressureQueue()
        self._eof = False  # producer declared no more writes
        self._starved = False  # last drain found the queue empty before eof
        self.ended = False  # terminal marker produced

        self._consumer: Consumer | None = None
        self._pull: list[MatchRecord] | None = None
        self._pull_size: int | None = None
        self._draining = False
        self._resume_requested = False

        self._written = 0
        self._delivered = 0
        self._lock = threading.RLock()

    # ------------- Producer side -------------

    def write(self, item: Any) -> bool:
        with self._lock:
            if self._eof:
                raise StreamClosedError("write() after end()")
            self._written += 1
            self.matcher.push(item)
            self._hooks.stream_write(written=self._written, qsize=len(self._queue))
            self._feed_starved()
            return True

    def write_all(self, items: Iterable[Any]) -> None:
        for item in items:
            self.write(item)

    def end(self) -> None:
        with self._lock:
            if self._eof:
                raise StreamClosedError("end() called twice")
            try:
                self.matcher.finish()
            finally:
                self._eof = True
            self._feed_starved()

    # ------------- Consumer side -------------

    def pipe(self, consumer: Consumer) -> Consumer:
        with self._lock:
            if self._consumer is not None:
                raise StreamModeError("stream is already piped")
            self._consumer = consumer
            self._read()
            return consumer

    def resume(self) -> None:
        """Read request from a piped consumer that is ready again."""
        with self._lock:
            if self._draining:
                self._resume_requested = True
                return
            self._read()

    def read(self, size: int | None = None) -> list[MatchRecord]:
        with self._lock:
            if self._consumer is not None:
                raise StreamModeError("read() on a piped stream")
            if size is not None and size < 1:
                raise ValueError(f"size must be >= 1, got {size}")
            batch: list[MatchRecord] = []
            self._pull, self._pull_size = batch, size
            try:
                self._read()
            finally:
                self._pull, self._pull_size = None, None
            return batch

    def __iter__(self) -> Iterator[MatchRecord]:
        # yields what is ready now; after end() this runs to the terminal marker
        while not self.ended:
            batch = self.read()
            if not batch and not self.ended:
                return
            yield from batch

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def starved(self) -> bool:
        return self._starved

    # ------------- Matcher callbacks -------------

    def handle_match(self, source, target, distance) -> None:
        self.enqueue_object(MatchRecord.match(source, target, distance))

    def handle_miss(self, source, target) -> None:
        if source is None and target is not None:
            if self.emit_target_misses:
                self.enqueue_object(MatchRecord.target_miss(target))
            return
        self.enqueue_object(MatchRecord.input_miss(source))

    def enqueue_object(self, rec: MatchRecord) -> None:
        self._queue.enqueue(rec)

    # ------------- Drain -------------

    def _feed_starved(self) -> None:
        if self._starved:
            self._starved = False
            self._read()

    def _read(self) -> None:
        if self.ended or self._draining:
            return
        if self._consumer is None and self._pull is None:
            return
        self._draining = True
        try:
            while not self._queue.is_empty():
                # a record leaves the queue only once the consumer accepted it
                ready = self._push(self._queue.peek())
                self._queue.dequeue()
                if ready:
                    continue
                if self._resume_requested:
                    self._resume_requested = False
                    continue
                if self._eof and self._queue.is_empty():
                    self._push_eof()
                    return
                self._hooks.stream_paused(qsize=len(self._queue))
                return

            if self._eof:
                self._push_eof()
            else:
                self._starved = True
                self._hooks.stream_starved(delivered=self._delivered)
        finally:
            self._draining = False
            self._resume_requested = False

    def _push(self, rec: MatchRecord) -> bool:
        if self._consumer is not None:
            ready = self._consumer.write(rec) is not False
            self._delivered += 1
            return ready
        self._pull.append(rec)
        self._delivered += 1
        return self._pull_size is None or len(self._pull) < self._pull_size

    def _push_eof(self) -> None:
        self.ended = True
        self._hooks.stream_eof(delivered=self._delivered)
        if self._consumer is not None:
            self._consumer.close()


def match_stream(items: Iterable[Any], targets: Iterable[Any] = (), **kwargs) -> list[MatchRecord]:
    """Run a whole input sequence through a fresh stream and collect every record."""
    stream = MatchingStream(targets, **kwargs)
    stream.write_all(items)
    stream.end()
    return list(stream)
