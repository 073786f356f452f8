# tests/engine/test_matcher.py
import logging

import pytest

from oms.domain.state import BestMatch, Candidate
from oms.engine.matcher import Matcher, MatcherClosedError

TARGETS = [0, 50, 100, 200, 500, 925, 1000]
INPUTS = [925, 934, 116, 49, 243, 20]


# ---------- Recording callbacks ----------


class Calls:
    def __init__(self):
        self.out = []

    def on_match(self, source, target, distance):
        self.out.append(("match", source, target, distance))

    def on_miss(self, source, target):
        self.out.append(("miss", source, target))


def make(targets=(), **kw):
    calls = Calls()
    m = Matcher(targets, on_match=calls.on_match, on_miss=calls.on_miss, **kw)
    return m, calls


# ---------- Scenarios ----------


def test_numeric_scenario_without_max_distance():
    m, calls = make(TARGETS)
    for x in INPUTS:
        m.push(x)
    m.finish()
    assert calls.out == [
        ("match", 925, 925, 0),
        ("match", 934, 1000, 66),
        ("match", 116, 100, 16),
        ("match", 49, 50, 1),
        ("match", 243, 200, 43),
        ("match", 20, 0, 20),
        ("miss", None, 500),
    ]


def test_numeric_scenario_with_max_distance():
    m, calls = make(TARGETS, max_distance=50)
    for x in INPUTS:
        m.push(x)
    # 934 has nothing within 50 once 925 is gone: reported during its own push
    assert calls.out == [("match", 925, 925, 0), ("miss", 934, None)]
    m.finish()
    assert calls.out[2:] == [
        ("match", 116, 100, 16),
        ("match", 49, 50, 1),
        ("match", 243, 200, 43),
        ("match", 20, 0, 20),
        ("miss", None, 500),
        ("miss", None, 1000),
    ]


def test_empty_pool_reports_every_input_as_miss():
    m, calls = make()
    for x in INPUTS:
        m.push(x)
    m.finish()
    assert calls.out == [("miss", x, None) for x in INPUTS]


def test_perfect_match_is_reported_inside_push():
    m, calls = make(TARGETS)
    m.push(500)
    assert calls.out == [("match", 500, 500, 0)]
    assert 500 not in m.live_targets
    assert m.live_inputs == []


def test_non_perfect_claims_wait_for_finish():
    m, calls = make([10])
    m.push(7)
    assert calls.out == []
    assert m.best_match(0) == BestMatch(0, 3)
    m.finish()
    assert calls.out == [("match", 7, 10, 3)]


# ---------- Displacement & cascade ----------


def test_displaced_input_without_alternatives_is_missed_immediately():
    m, calls = make([0, 10])
    m.push(4)  # claims 0 at 4
    m.push(6)  # 0 is held closer, claims 10 at 4
    m.push(1)  # unseats 4 from target 0; 4 cannot beat 6 on target 10
    assert calls.out == [("miss", 4, None)]
    m.finish()
    assert calls.out[1:] == [("match", 6, 10, 4), ("match", 1, 0, 1)]


def test_displaced_input_falls_back_to_next_candidate():
    m, calls = make([0, 10, 20])
    m.push(5)
    m.push(2)
    assert m.best_match(0) == BestMatch(1, 2)
    assert m.best_match(1) == BestMatch(0, 5)
    m.finish()
    assert calls.out == [
        ("match", 5, 10, 5),
        ("match", 2, 0, 2),
        ("miss", None, 20),
    ]


def test_cascade_runs_through_several_displacements():
    m, calls = make([0, 10, 20])
    m.push(5)  # -> 0
    m.push(2)  # takes 0, 5 -> 10
    m.push(11)  # takes 10, 5 -> 20
    assert m.best_match(2) == BestMatch(0, 15)
    m.finish()
    assert calls.out == [
        ("match", 5, 20, 15),
        ("match", 2, 0, 2),
        ("match", 11, 10, 1),
    ]


def test_perfect_claim_reports_before_cascading_the_displaced_holder():
    m, calls = make([3, 5])
    m.push(4)  # claims 3 at 1
    m.push(3)  # perfect on 3, unseats 4 which moves to 5
    assert calls.out == [("match", 3, 3, 0)]
    assert m.best_match(1) == BestMatch(0, 1)
    m.finish()
    assert calls.out[1:] == [("match", 4, 5, 1)]


def test_best_match_survives_target_tombstoning():
    m, calls = make([5])
    m.push(5)
    assert m.best_match(0) == BestMatch(0, 0)
    assert m.live_targets == []
    m.push(6)
    assert calls.out[-1] == ("miss", 6, None)


# ---------- Candidates ----------


def test_candidates_are_ranked_with_index_tie_break():
    m, _ = make([10, 0, 7, "x"])
    assert m.candidates_for(5) == [Candidate(2, 2), Candidate(0, 5), Candidate(1, 5)]
    # ranking is side-effect free
    assert m.live_inputs == []
    assert m.best_match(0) is None


def test_candidates_exclude_targets_not_strictly_improved():
    m, _ = make([0, 10])
    m.push(3)
    assert m.candidates_for(3) == [Candidate(1, 7)]
    assert m.candidates_for(2) == [Candidate(0, 2), Candidate(1, 8)]


def test_incomparable_and_nan_distances_are_ineligible():
    def dist(a, b):
        if b == "nan":
            return float("nan")
        if b == "none":
            return None
        return abs(a - b)

    m, calls = make(["nan", "none", 3], distance=dist)
    assert m.candidates_for(1) == [Candidate(2, 2)]
    m.push(1)
    m.finish()
    assert calls.out == [
        ("match", 1, 3, 2),
        ("miss", None, "nan"),
        ("miss", None, "none"),
    ]


def test_max_distance_is_inclusive():
    m, calls = make([0], max_distance=5)
    m.push(5)
    m.push(6)
    m.finish()
    assert calls.out == [("miss", 6, None), ("match", 5, 0, 5)]


def test_zero_max_distance_only_allows_perfect_matches():
    m, calls = make([1, 2], max_distance=0)
    m.push(2)
    m.push(3)
    m.finish()
    assert calls.out == [("match", 2, 2, 0), ("miss", 3, None), ("miss", None, 1)]


def test_strings_use_edit_distance_by_default():
    m, calls = make(["kitten", "lazy"])
    m.push("sitting")
    m.push("lazy")
    m.finish()
    assert calls.out == [("match", "lazy", "lazy", 0), ("match", "sitting", "kitten", 3)]


# ---------- Misuse & failures ----------


def test_push_after_finish_is_rejected():
    m, calls = make([1])
    m.finish()
    with pytest.raises(MatcherClosedError):
        m.push(1)
    with pytest.raises(MatcherClosedError):
        m.finish()
    assert m.finished
    assert m.live_inputs == []
    assert calls.out == [("miss", None, 1)]


def test_invalid_construction():
    with pytest.raises(ValueError):
        Matcher([1, None])
    with pytest.raises(ValueError):
        Matcher([1], max_distance=-1)
    with pytest.raises(ValueError):
        Matcher([1], max_distance=float("nan"))


def test_callback_failure_propagates_and_state_stays_consistent():
    m, calls = make([1, 2])

    def boom(source, target, distance):
        raise RuntimeError("sink down")

    m.on_match = boom
    with pytest.raises(RuntimeError):
        m.push(1)
    assert m.live_targets == [2]
    assert m.live_inputs == []

    m.on_match = calls.on_match
    m.push(2)
    assert calls.out == [("match", 2, 2, 0)]


def test_undelivered_emissions_survive_a_failing_callback():
    m, calls = make([0, 10])
    m.push(1)
    m.push(9)
    failures = []

    def flaky(source, target, distance):
        if not failures:
            failures.append(source)
            raise RuntimeError("first delivery fails")
        calls.on_match(source, target, distance)

    m.on_match = flaky
    with pytest.raises(RuntimeError):
        m.finish()
    assert failures == [1]
    assert calls.out == []

    m.flush()
    assert calls.out == [("match", 9, 10, 1)]
    m.flush()
    assert calls.out == [("match", 9, 10, 1)]


def test_claim_not_held_is_logged_loudly_but_still_reported(caplog):
    m, calls = make([0, 10])
    m.push(1)
    m._state.targets[0].best = BestMatch(99, 0.5)
    with caplog.at_level(logging.WARNING, logger="oms.engine.matcher"):
        m.finish()
    assert calls.out[0] == ("match", 1, 0, 1)
    assert any("without holding its best claim" in r.getMessage() for r in caplog.records)


# ---------- Default reporting ----------


def test_default_callbacks_print_readable_lines(capsys):
    m = Matcher([925, 10, 40])
    m.push(925)
    m.push(7)
    m.finish()
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["925 === 925", "7 ~3~ 10", "40 UNMATCHED"]


def test_push_returns_arrival_index():
    m, _ = make([1])
    assert [m.push(x) for x in (5, 6, 7)] == [0, 1, 2]
