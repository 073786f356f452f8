# oms/domain/events.py
from dataclasses import dataclass
from typing import Any, Literal

RecordKind = Literal["match", "input_miss", "target_miss"]


# Engine emissions
@dataclass(frozen=True)
class MatchFound:
    input_index: int
    target_index: int
    source: Any
    target: Any
    distance: float


@dataclass(frozen=True)
class InputMissed:
    input_index: int
    source: Any


@dataclass(frozen=True)
class TargetMissed:
    target_index: int
    target: Any


MatchEvent = MatchFound | InputMissed | TargetMissed


# Stream output
@dataclass(frozen=True)
class MatchRecord:
    kind: RecordKind
    source: Any = None
    target: Any = None
    distance: float | None = None

    @property
    def matched(self) -> bool:
        return self.kind == "match"

    @classmethod
    def match(cls, source, target, distance) -> "MatchRecord":
        return cls("match", source, target, distance)

    @classmethod
    def input_miss(cls, source) -> "MatchRecord":
        return cls("input_miss", source=source)

    @classmethod
    def target_miss(cls, target) -> "MatchRecord":
        return cls("target_miss", target=target)

    def as_dict(self) -> dict[str, Any]:
        if self.kind == "match":
            return {"source": self.source, "target": self.target, "distance": self.distance}
        if self.kind == "input_miss":
            return {"source": self.source}
        return {"target": self.target}
