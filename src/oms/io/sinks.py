# oms/io/sinks.py
import json
import sys

from oms.domain.events import MatchRecord


class JsonlSink:
    """Consumer writing one JSON object per record (non-JSON values via repr)."""

    def __init__(self, fp=None):
        self.fp = fp or sys.stdout

    def write(self, rec: MatchRecord) -> bool:
        self.fp.write(json.dumps(rec.as_dict(), default=repr) + "\n")
        return True

    def close(self) -> None:
        self.fp.flush()


class MemorySink:
    def __init__(self):
        self.records: list[MatchRecord] = []
        self.closed = False

    def write(self, rec: MatchRecord) -> bool:
        self.records.append(rec)
        return True

    def close(self) -> None:
        self.closed = True

    def as_dicts(self) -> list[dict]:
        return [r.as_dict() for r in self.records]


class TextReport:
    """Default match/miss callbacks: one human-readable line per emission."""

    def __init__(self, fp=None):
        self.fp = fp

    def _line(self, text: str) -> None:
        print(text, file=self.fp or sys.stdout)

    def on_match(self, source, target, distance) -> None:
        if distance == 0:
            self._line(f"{source} === {target}")
        else:
            self._line(f"{source} ~{distance}~ {target}")

    def on_miss(self, source, target) -> None:
        self._line(f"{target if source is None else source} UNMATCHED")
