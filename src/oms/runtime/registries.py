# runtime/registries.py
from collections.abc import Callable
from functools import partial

from oms.config.models import (
    DistanceAbsoluteModel,
    DistanceAutoModel,
    DistanceEuclideanModel,
    DistanceLevenshteinModel,
    DistanceUnion,
)
from oms.policy.distance import (
    DistanceFn,
    absolute_distance,
    auto_distance,
    euclidean_distance,
    levenshtein_distance,
)

DistanceFactory = Callable[[DistanceUnion], DistanceFn]

_distance_registry: dict[str, DistanceFactory] = {}


def register_distance(kind: str):
    def deco(fn: DistanceFactory):
        _distance_registry[kind] = fn
        return fn

    return deco


def make_distance(cfg: DistanceUnion) -> DistanceFn:
    try:
        factory = _distance_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown distance kind {cfg.kind!r}")
    return factory(cfg)


def distance_kinds() -> list[str]:
    return sorted(_distance_registry)


@register_distance("auto")
def _make_auto(cfg: DistanceAutoModel):
    return auto_distance


@register_distance("absolute")
def _make_absolute(cfg: DistanceAbsoluteModel):
    return absolute_distance


@register_distance("levenshtein")
def _make_levenshtein(cfg: DistanceLevenshteinModel):
    if cfg.ignore_case:
        return partial(levenshtein_distance, ignore_case=True)
    return levenshtein_distance


@register_distance("euclidean")
def _make_euclidean(cfg: DistanceEuclideanModel):
    return euclidean_distance
