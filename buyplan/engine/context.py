# buyplan/engine/context.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EngineContext:
    vertical_id: str
    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    # injected so a stage re-run with the same inputs is reproducible
    now: datetime = field(default_factory=utc_now)


@dataclass
class StageResult:
    status: str = "OK"  # "OK" | "FAILED"
    data: Any = None  # the stage output model, stored in state.stage<N>
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


class PipelineMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str
    stage: int = 0
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class StagedState(BaseModel):
    """
    Explicit record of every stage's output.
    Subclasses declare one typed slot per stage named ``stage<N>``; a slot is
    None until its stage has run. Stages only ever write their own slot.
    """

    model_config = ConfigDict(populate_by_name=True)

    meta: PipelineMeta
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    @staticmethod
    def slot_name(stage: int) -> str:
        return f"stage{stage}"

    def output(self, stage: int) -> Any:
        return getattr(self, self.slot_name(stage), None)

    def with_output(self, stage: int, value: Any) -> "StagedState":
        slot = self.slot_name(stage)
        if slot not in type(self).model_fields:
            raise KeyError(f"{type(self).__name__} has no slot for stage {stage}")
        return self.model_copy(update={slot: value})
