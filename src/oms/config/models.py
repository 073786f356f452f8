from math import isnan
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = Field(default=1, ge=1)


# ----------------- DISTANCE ---------------------


class DistanceAutoModel(BaseModel):
    """Numbers by absolute difference, strings by edit distance."""

    model_config = ConfigDict(extra="forbid")
    kind: Literal["auto"] = "auto"


class DistanceAbsoluteModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["absolute"] = "absolute"


class DistanceLevenshteinModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["levenshtein"] = "levenshtein"
    ignore_case: bool = False


class DistanceEuclideanModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["euclidean"] = "euclidean"


DistanceUnion = Annotated[
    DistanceAutoModel | DistanceAbsoluteModel | DistanceLevenshteinModel | DistanceEuclideanModel,
    Field(discriminator="kind"),
]


# ----------------- MATCHER / STREAM ---------------------


class MatcherModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    max_distance: float | None = None  # inclusive; None = unbounded
    distance: DistanceUnion = Field(default_factory=DistanceAutoModel)

    @field_validator("max_distance")
    @classmethod
    def _nonneg(cls, v: float | None) -> float | None:
        if v is None:
            return v
        if isnan(v) or v < 0:
            raise ValueError(f"max_distance must be >= 0, got {v}")
        return v


class StreamModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    # False keeps one output record per written input
    emit_target_misses: bool = False


# ------------------------------------------------------------------


class MatchingModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "default"
    run_id: str = "local"
    matcher: MatcherModel = MatcherModel()
    stream: StreamModel = StreamModel()
    log: LogModel = LogModel()
