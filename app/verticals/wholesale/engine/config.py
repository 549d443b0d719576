from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import ValidationError, validate

from buyplan.engine.config import PipelineConfig, load_pipeline_config

from ..errors import ConfigError

D = Decimal

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "engine_v3.yaml"
SCHEMA_PATH = CONFIG_DIR / "engine_config.schema.json"


@dataclass(frozen=True)
class OptionsConfig:
    horizon_months: int = 3
    max_options: int = 20


@dataclass(frozen=True)
class BundlesConfig:
    max_seeds: int = 5
    max_bundles_per_supplier: int = 8
    supplier_budget_cap: Optional[D] = D("5000")


# 2^24 subsets is the most the exhaustive search is allowed to walk
MAX_EXHAUSTIVE_CEILING = 24


@dataclass(frozen=True)
class OptimizerConfig:
    max_exhaustive: int = 20
    force_greedy: bool = False
    one_bundle_per_supplier: bool = True

    def __post_init__(self) -> None:
        clamped = max(0, min(int(self.max_exhaustive), MAX_EXHAUSTIVE_CEILING))
        object.__setattr__(self, "max_exhaustive", clamped)


@dataclass(frozen=True)
class ChurnConfig:
    cap_weeks: Optional[D] = None


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunable engine policy. Passed explicitly into every call.
    ``EngineConfig()`` equals the shipped engine_v3.yaml.
    """

    version: str = "3.1.0"
    options: OptionsConfig = field(default_factory=OptionsConfig)
    bundles: BundlesConfig = field(default_factory=BundlesConfig)
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    churn: ChurnConfig = field(default_factory=ChurnConfig)
    pipeline: Optional[PipelineConfig] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "EngineConfig":
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        try:
            validate(instance=raw, schema=schema)
        except ValidationError as e:
            raise ConfigError(f"invalid engine config: {e.message}") from e

        opts = raw.get("options") or {}
        bund = raw.get("bundles") or {}
        optim = raw.get("optimizer") or {}
        churn = raw.get("churn") or {}

        cap = bund.get("supplier_budget_cap", BundlesConfig.supplier_budget_cap)
        cap_weeks = churn.get("cap_weeks")

        return cls(
            version=str(raw["version"]),
            options=OptionsConfig(
                horizon_months=int(opts.get("horizon_months", OptionsConfig.horizon_months)),
                max_options=int(opts.get("max_options", OptionsConfig.max_options)),
            ),
            bundles=BundlesConfig(
                max_seeds=int(bund.get("max_seeds", BundlesConfig.max_seeds)),
                max_bundles_per_supplier=int(
                    bund.get("max_bundles_per_supplier", BundlesConfig.max_bundles_per_supplier)
                ),
                supplier_budget_cap=None if cap is None else D(str(cap)),
            ),
            optimizer=OptimizerConfig(
                max_exhaustive=int(optim.get("max_exhaustive", OptimizerConfig.max_exhaustive)),
                force_greedy=bool(optim.get("force_greedy", False)),
                one_bundle_per_supplier=bool(optim.get("one_bundle_per_supplier", True)),
            ),
            churn=ChurnConfig(cap_weeks=None if cap_weeks is None else D(str(cap_weeks))),
            pipeline=load_pipeline_config(raw),
        )

    @classmethod
    def from_yaml_file(cls, path: Optional[str] = None) -> "EngineConfig":
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        if not isinstance(raw, dict):
            raise ConfigError(f"engine config is not a mapping: {config_path}")
        return cls.from_dict(raw)

    def require_pipeline(self) -> PipelineConfig:
        if self.pipeline is None:
            return default_pipeline()
        return self.pipeline


@lru_cache(maxsize=1)
def default_pipeline() -> PipelineConfig:
    """Pipeline section of the shipped YAML, read once per process."""
    return EngineConfig.from_yaml_file().pipeline  # type: ignore[return-value]
