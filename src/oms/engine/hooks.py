# oms/engine/hooks.py
from typing import Protocol


class MatcherHooks(Protocol):
    def matcher_start(self, *, targets, max_distance): ...
    def push(self, value, *, input_index, candidates): ...
    def claim(self, *, input_index, target_index, distance, displaced): ...
    def stale(self, *, input_index, target_index, distance): ...
    def match(self, *, input_index, target_index, distance): ...
    def miss(self, *, input_index=None, target_index=None): ...
    def finish_start(self, *, live_inputs, live_targets): ...
    def finish_end(self, *, matched, missed): ...
    def violation(self, *, input_index, target_index, reason: str): ...


class StreamHooks(Protocol):
    def stream_write(self, *, written, qsize): ...
    def stream_paused(self, *, qsize): ...
    def stream_starved(self, *, delivered): ...
    def stream_eof(self, *, delivered): ...


class NoopHooks:
    def matcher_start(self, **_):
        pass

    def push(self, *_, **__):
        pass

    def claim(self, **_):
        pass

    def stale(self, **_):
        pass

    def match(self, **_):
        pass

    def miss(self, **_):
        pass

    def finish_start(self, **_):
        pass

    def finish_end(self, **_):
        pass

    def violation(self, **_):
        pass

    def stream_write(self, **_):
        pass

    def stream_paused(self, **_):
        pass

    def stream_starved(self, **_):
        pass

    def stream_eof(self, **_):
        pass
