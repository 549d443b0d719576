# buyplan/engine/config.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class StageConfig:
    stage: int
    id: str
    use: str
    with_: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PipelineConfig:
    vertical_id: str
    stages: Tuple[StageConfig, ...]
    version: str = "v1"

    def stage(self, number: int) -> StageConfig:
        for s in self.stages:
            if s.stage == number:
                return s
        raise KeyError(
            f"Unknown stage {number}. Configured: {sorted(s.stage for s in self.stages)}"
        )

    @property
    def stage_numbers(self) -> Tuple[int, ...]:
        return tuple(sorted(s.stage for s in self.stages))


def load_pipeline_config(raw: Dict[str, Any]) -> PipelineConfig:
    stages = []
    for s in raw["pipeline"]["stages"]:
        stages.append(
            StageConfig(
                stage=int(s["stage"]),
                id=s["id"],
                use=s["use"],
                with_=dict(s.get("with", {})),
            )
        )

    numbers = [s.stage for s in stages]
    if len(numbers) != len(set(numbers)):
        raise ValueError(f"Duplicate stage numbers in pipeline config: {numbers}")

    return PipelineConfig(
        vertical_id=raw["vertical_id"],
        stages=tuple(sorted(stages, key=lambda s: s.stage)),
        version=raw["pipeline"].get("version", "v1"),
    )
