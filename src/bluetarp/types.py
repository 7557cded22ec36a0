from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from bluetarp.cv import FoldAssignment, ScoreVector
from bluetarp.io import Dataset
from bluetarp.metrics import MetricsSummary


@dataclass(frozen=True)
class RunBundle:
    dataset: Dataset
    assignment: FoldAssignment
    input_sha256: str


@dataclass(frozen=True)
class ModelRunConfig:
    model: str
    threshold: float
    hyperparameters: Mapping[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "threshold": float(self.threshold),
            "hyperparameters": dict(self.hyperparameters),
        }


@dataclass(frozen=True)
class ModelOutcome:
    config: ModelRunConfig
    status: str
    scores: ScoreVector | None = None
    summary: MetricsSummary | None = None
    failed_fold: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class ComparisonResult:
    outcomes: Mapping[str, ModelOutcome]

    @classmethod
    def from_outcomes(cls, outcomes: list[ModelOutcome]) -> "ComparisonResult":
        return cls(outcomes={o.config.model: o for o in outcomes})

    def summary(self, model: str) -> MetricsSummary | None:
        return self.outcomes[model].summary

    def scores(self, model: str) -> ScoreVector | None:
        return self.outcomes[model].scores

    @property
    def failed(self) -> list[str]:
        return [name for name, o in self.outcomes.items() if o.summary is None]
