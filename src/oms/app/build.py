# oms/app/build.py
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from oms.config.models import MatchingModel
from oms.engine.hooks import NoopHooks
from oms.engine.matcher import Matcher
from oms.io.matcher_logging import MatcherLogging
from oms.policy.distance import DistanceFn
from oms.runtime.registries import make_distance
from oms.stream.adapter import MatchingStream


@dataclass
class App:
    config: MatchingModel
    hooks: MatcherLogging | NoopHooks
    stream: MatchingStream

    @property
    def matcher(self) -> Matcher:
        return self.stream.matcher


def _validate(cfg: MatchingModel | Mapping | None) -> MatchingModel:
    if isinstance(cfg, MatchingModel):
        return cfg
    return MatchingModel.model_validate(cfg or {})


def _make_hooks(model: MatchingModel, use_logging: bool) -> MatcherLogging | NoopHooks:
    if not use_logging:
        return NoopHooks()
    return MatcherLogging(
        run_id=model.run_id,
        level=model.log.level,
        debug=model.log.debug,
        sample_every=model.log.sample_every,
    )


def build(
    cfg: MatchingModel | Mapping | None = None,
    *,
    targets: Iterable[Any] = (),
    distance: DistanceFn | None = None,
    use_logging: bool = True,
) -> App:
    # 0) Validate config
    model = _validate(cfg)

    # 1) Hooks (JSON logs)
    hooks = _make_hooks(model, use_logging)

    # 2) Distance strategy; an explicit callable wins over the configured kind
    dist = distance or make_distance(model.matcher.distance)

    # 3) Stream around a fresh matcher
    stream = MatchingStream(
        targets,
        distance=dist,
        max_distance=model.matcher.max_distance,
        emit_target_misses=model.stream.emit_target_misses,
        hooks=hooks,
    )
    return App(model, hooks, stream)


def build_matcher(
    cfg: MatchingModel | Mapping | None = None,
    *,
    targets: Iterable[Any] = (),
    distance: DistanceFn | None = None,
    on_match=None,
    on_miss=None,
    use_logging: bool = True,
) -> Matcher:
    """Standalone matcher with callbacks wired directly (no stream)."""
    model = _validate(cfg)
    return Matcher(
        targets,
        distance=distance or make_distance(model.matcher.distance),
        max_distance=model.matcher.max_distance,
        on_match=on_match,
        on_miss=on_miss,
        hooks=_make_hooks(model, use_logging),
    )
