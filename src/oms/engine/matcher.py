# oms/engine/matcher.py
import logging
import math
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any

from oms.domain.events import InputMissed, MatchEvent, MatchFound, TargetMissed
from oms.domain.state import BestMatch, Candidate, InputSlot, MatchState, TargetSlot
from oms.engine.hooks import MatcherHooks, NoopHooks
from oms.io.sinks import TextReport
from oms.policy.distance import DistanceFn, auto_distance, is_comparable

log = logging.getLogger(__name__)

MatchCallback = Callable[[Any, Any, float], None]
MissCallback = Callable[[Any, Any], None]


class MatcherClosedError(RuntimeError):
    pass


class Matcher:
    """
    Online greedy matcher of arriving inputs against a fixed target pool.

    Each pushed input ranks the open targets it could improve on and claims
    the best one; a strictly closer input later unseats it, and the unseated
    input falls back to its next candidate. Claims at distance 0 are final
    immediately, everything else is settled by finish().

    Emissions are staged in an outbox and handed to on_match/on_miss only
    after the state transitions of the current call are complete.
    """

    def __init__(
        self,
        targets: Iterable[Any] = (),
        distance: DistanceFn | None = None,
        max_distance: float | None = None,
        on_match: MatchCallback | None = None,
        on_miss: MissCallback | None = None,
        hooks: MatcherHooks | None = None,
    ):
        pool = list(targets)
        if any(t is None for t in pool):
            raise ValueError("target pool must not contain None")
        if max_distance is not None and not max_distance >= 0:
            raise ValueError(f"max_distance must be >= 0, got {max_distance!r}")

        self._state = MatchState.from_pool(pool)
        self._distance = distance or auto_distance
        self._max = math.inf if max_distance is None else max_distance
        report = TextReport()
        self.on_match = on_match or report.on_match
        self.on_miss = on_miss or report.on_miss
        self._hooks = hooks or NoopHooks()
        self._outbox: deque[MatchEvent] = deque()
        self._finished = False
        self._hooks.matcher_start(targets=len(pool), max_distance=max_distance)

    # ------------- Introspection -------------

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def max_distance(self) -> float:
        return self._max

    @property
    def targets(self) -> list[Any]:
        return [t.value for t in self._state.targets]

    @property
    def live_inputs(self) -> list[Any]:
        return [i.value for i in self._state.live_inputs()]

    @property
    def live_targets(self) -> list[Any]:
        return [t.value for t in self._state.live_targets()]

    def best_match(self, target_index: int) -> BestMatch | None:
        return self._state.targets[target_index].best

    # ------------- Public API -------------

    def candidates_for(self, value: Any) -> list[Candidate]:
        """
        Rank the open targets `value` could claim right now: comparable,
        within max_distance and strictly closer than the target's best claim.
        Ascending by distance, ties by target index. Does not touch state.
        """
        out: list[Candidate] = []
        for t in self._state.targets:
            if not t.live:
                continue
            d = self._distance(value, t.value)
            if not is_comparable(d) or d > self._max:
                continue
            if t.best is not None and not d < t.best.distance:
                continue
            out.append(Candidate(t.index, d))
        out.sort(key=lambda c: (c.distance, c.target_index))
        return out

    def push(self, value: Any) -> int:
        """Register an input, run the re-match cascade and deliver emissions."""
        if self._finished:
            raise MatcherClosedError("push() after finish()")
        candidates = self.candidates_for(value)
        slot = self._state.add_input(value, candidates)
        self._hooks.push(value, input_index=slot.index, candidates=len(candidates))
        self._resolve(slot.index)
        self.flush()
        return slot.index

    def finish(self) -> None:
        """Settle every live input in arrival order, then report open targets."""
        if self._finished:
            raise MatcherClosedError("finish() called twice")
        self._finished = True

        inputs = self._state.live_inputs()
        targets_before = len(self._state.live_targets())
        self._hooks.finish_start(live_inputs=len(inputs), live_targets=targets_before)
        matched = 0
        for slot in inputs:
            matched += self._report(slot)
        leftovers = self._state.live_targets()
        for t in leftovers:
            self._state.tombstone_target(t)
            self._outbox.append(TargetMissed(t.index, t.value))
            self._hooks.miss(target_index=t.index)
        self._hooks.finish_end(matched=matched, missed=len(inputs) - matched + len(leftovers))
        self.flush()

    def flush(self) -> None:
        """Deliver staged emissions; a raising callback leaves the rest queued."""
        while self._outbox:
            self._dispatch(self._outbox.popleft())

    # ------------- Resolution -------------

    def _resolve(self, input_index: int) -> None:
        # each step displaces at most one holder, so the worklist stays tiny
        pending = [input_index]
        while pending:
            displaced = self._resolve_one(self._state.inputs[pending.pop()])
            if displaced is not None:
                pending.append(displaced)

    def _resolve_one(self, slot: InputSlot) -> int | None:
        """Claim the first still-winnable candidate; return the unseated holder."""
        while slot.candidates:
            c = slot.candidates[0]
            t = self._state.targets[c.target_index]
            if t.live and (t.best is None or t.best.distance > c.distance):
                prev = t.best
                t.best = BestMatch(slot.index, c.distance)
                slot.claim = c
                if prev is not None:
                    self._state.inputs[prev.input_index].claim = None
                self._hooks.claim(
                    input_index=slot.index,
                    target_index=t.index,
                    distance=c.distance,
                    displaced=prev.input_index if prev else None,
                )
                if c.distance == 0:
                    self._report(slot)
                return prev.input_index if prev else None

            self._hooks.stale(input_index=slot.index, target_index=t.index, distance=c.distance)
            slot.candidates.popleft()

        if slot.claim is None:
            self._report(slot)
        return None

    def _report(self, slot: InputSlot) -> bool:
        claim = slot.claim
        if claim is None:
            self._outbox.append(InputMissed(slot.index, slot.value))
            self._hooks.miss(input_index=slot.index)
            self._state.tombstone_input(slot)
            return False

        t: TargetSlot = self._state.targets[claim.target_index]
        if t.best is None or t.best.input_index != slot.index:
            log.warning(
                "input %d reported as matched to target %d without holding its best claim",
                slot.index,
                t.index,
            )
            self._hooks.violation(
                input_index=slot.index, target_index=t.index, reason="claim_not_held"
            )
        # t.best stays set so stale candidate lists still see the last claim distance
        self._state.tombstone_target(t)
        self._outbox.append(MatchFound(slot.index, t.index, slot.value, t.value, claim.distance))
        self._hooks.match(input_index=slot.index, target_index=t.index, distance=claim.distance)
        self._state.tombstone_input(slot)
        return True

    def _dispatch(self, ev: MatchEvent) -> None:
        if isinstance(ev, MatchFound):
            self.on_match(ev.source, ev.target, ev.distance)
        elif isinstance(ev, InputMissed):
            self.on_miss(ev.source, None)
        else:
            self.on_miss(None, ev.target)
