from __future__ import annotations

from typing import Any, Dict, Optional


class BuyPlanError(Exception):
    """
    Base for every failure the buy-plan engine surfaces to a caller.

    - code: stable machine-readable identifier (used by the HTTP layer)
    - reason: human readable message
    - stage: pipeline stage number when raised from a stage, else None
    """

    code: str = "buy_plan_error"

    def __init__(
        self,
        reason: str,
        *,
        stage: Optional[int] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        self.reason = str(reason)
        self.stage = stage
        self.meta = meta or {}
        prefix = f"[Stage {stage}] " if stage is not None else ""
        super().__init__(f"{prefix}{self.reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": str(self),
            "code": self.code,
            "stage": self.stage,
        }


class InputError(BuyPlanError):
    """Invalid budget, empty product/bundle set, unknown stage number."""

    code = "invalid_input"


class NoMatchError(BuyPlanError):
    """No freight curve matches the shipment. Callers fall back to the generic rate model."""

    code = "no_freight_curve"


class StageDependencyError(BuyPlanError):
    """A pipeline stage was invoked before its prerequisite stage produced output."""

    code = "stage_dependency"


class ConfigError(ValueError):
    """Raised when the engine YAML does not validate against its schema."""
