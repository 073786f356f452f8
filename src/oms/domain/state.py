# oms/domain/state.py
from collections import deque
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Candidate:
    target_index: int
    distance: float


@dataclass(frozen=True)
class BestMatch:
    input_index: int
    distance: float


@dataclass
class TargetSlot:
    index: int
    value: Any
    live: bool = True
    # last known best claim; kept after the target is tombstoned
    best: BestMatch | None = None


@dataclass
class InputSlot:
    index: int
    value: Any
    candidates: deque[Candidate] = field(default_factory=deque)
    live: bool = True
    claim: Candidate | None = None  # target currently held, if any


@dataclass
class MatchState:
    """
    Arena of targets and inputs addressed by stable integer handles.
    Slots are tombstoned (live=False), never removed, because candidate lists
    and best-match records cross-reference them by index.
    """

    targets: list[TargetSlot] = field(default_factory=list)
    inputs: list[InputSlot] = field(default_factory=list)

    @classmethod
    def from_pool(cls, pool) -> "MatchState":
        return cls(targets=[TargetSlot(i, v) for i, v in enumerate(pool)])

    def add_input(self, value: Any, candidates: list[Candidate]) -> InputSlot:
        slot = InputSlot(len(self.inputs), value, deque(candidates))
        self.inputs.append(slot)
        return slot

    def live_targets(self) -> list[TargetSlot]:
        return [t for t in self.targets if t.live]

    def live_inputs(self) -> list[InputSlot]:
        return [i for i in self.inputs if i.live]

    def tombstone_target(self, t: TargetSlot) -> None:
        t.live = False

    def tombstone_input(self, i: InputSlot) -> None:
        i.live = False
        i.claim = None
        i.candidates.clear()
