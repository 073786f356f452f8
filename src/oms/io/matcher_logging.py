# oms/io/matcher_logging.py
import json
import logging
import sys

from oms.engine.hooks import NoopHooks


def _default_json_logger(name="oms", level="INFO"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)

        class _JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "msg": record.getMessage(),
                    "logger": record.name,
                }
                extra = getattr(record, "extra", None)
                if isinstance(extra, dict):
                    payload.update(extra)
                return json.dumps(payload, default=repr)

        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


class MatcherLogging(NoopHooks):
    """
    Structured JSON logs for matcher and stream lifecycle.
    Outcomes and lifecycle go out at INFO; per-push traces only with debug=True.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 1,
        logger: logging.Logger | None = None,
    ):
        self.run_id, self.debug, self.sample_every = run_id, debug, max(1, sample_every)
        self.log = logger or _default_json_logger(level=level)
        self._pushes = 0
        self._traced = False

    def _emit(self, level: str, msg: str, **extra):
        payload = {"run_id": self.run_id}
        self.log.log(getattr(logging, level), msg, extra={"extra": {**payload, **extra}})

    def _trace(self, msg: str, **extra):
        if self.debug and self._traced:
            self._emit("DEBUG", msg, **extra)

    # matcher lifecycle

    def matcher_start(self, *, targets, max_distance):
        self._emit("INFO", "matcher_start", targets=targets, max_distance=max_distance)

    def push(self, value, *, input_index, candidates):
        self._pushes += 1
        # claims and stale skips inherit the sampling decision of their push
        self._traced = (self._pushes % self.sample_every) == 0
        self._trace("push", input_index=input_index, candidates=candidates)

    def claim(self, *, input_index, target_index, distance, displaced):
        self._trace(
            "claim",
            input_index=input_index,
            target_index=target_index,
            distance=distance,
            displaced=displaced,
        )

    def stale(self, *, input_index, target_index, distance):
        self._trace(
            "stale_candidate", input_index=input_index, target_index=target_index, distance=distance
        )

    def match(self, *, input_index, target_index, distance):
        self._emit(
            "INFO", "match", input_index=input_index, target_index=target_index, distance=distance
        )

    def miss(self, *, input_index=None, target_index=None):
        if input_index is not None:
            self._emit("INFO", "miss", input_index=input_index)
        else:
            self._emit("INFO", "miss", target_index=target_index)

    def finish_start(self, *, live_inputs, live_targets):
        self._traced = self.debug
        self._emit("INFO", "finish_start", live_inputs=live_inputs, live_targets=live_targets)

    def finish_end(self, *, matched, missed):
        self._emit("INFO", "finish_end", matched=matched, missed=missed)

    def violation(self, *, input_index, target_index, reason: str):
        self._emit(
            "WARNING",
            "invariant_violation",
            input_index=input_index,
            target_index=target_index,
            reason=reason,
        )

    # stream lifecycle

    def stream_write(self, *, written, qsize):
        self._trace("stream_write", written=written, qsize=qsize)

    def stream_paused(self, *, qsize):
        if self.debug:
            self._emit("DEBUG", "stream_paused", qsize=qsize)

    def stream_starved(self, *, delivered):
        if self.debug:
            self._emit("DEBUG", "stream_starved", delivered=delivered)

    def stream_eof(self, *, delivered):
        self._emit("INFO", "stream_eof", delivered=delivered)
