import pytest
import yaml

from app.verticals.wholesale.engine.config import DEFAULT_CONFIG_PATH, EngineConfig
from app.verticals.wholesale.errors import ConfigError


def _raw():
    with DEFAULT_CONFIG_PATH.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def test_defaults_match_shipped_yaml(engine_config):
    defaults = EngineConfig()
    assert engine_config.options == defaults.options
    assert engine_config.bundles == defaults.bundles
    assert engine_config.optimizer == defaults.optimizer
    assert engine_config.churn == defaults.churn
    assert engine_config.version == defaults.version


def test_pipeline_stages_are_loaded(engine_config):
    pipeline = engine_config.require_pipeline()
    assert pipeline.vertical_id == "wholesale"
    assert pipeline.version == "v3.3"
    assert pipeline.stage_numbers == tuple(range(9))
    assert pipeline.stage(7).with_ == {"max_iterations": 3}


def test_default_config_still_finds_a_pipeline():
    assert EngineConfig().require_pipeline().stage(0).use == "ws.load.v1"


def test_exhaustive_ceiling_is_enforced():
    raw = _raw()
    raw["optimizer"]["max_exhaustive"] = 30
    with pytest.raises(ConfigError):
        EngineConfig.from_dict(raw)


def test_unknown_keys_are_rejected():
    raw = _raw()
    raw["options"]["horizon_weeks"] = 12
    with pytest.raises(ConfigError):
        EngineConfig.from_dict(raw)


def test_duplicate_stage_numbers_are_rejected():
    raw = _raw()
    raw["pipeline"]["stages"].append({"stage": 1, "id": "again", "use": "ws.moq_blocks.v1"})
    with pytest.raises(ValueError):
        EngineConfig.from_dict(raw)


def test_unknown_stage_number():
    with pytest.raises(KeyError):
        EngineConfig().require_pipeline().stage(42)


def test_default_pipeline_is_read_once():
    from app.verticals.wholesale.engine.config import default_pipeline

    first = EngineConfig().require_pipeline()
    hits = default_pipeline.cache_info().hits
    second = EngineConfig().require_pipeline()

    assert first is second
    assert default_pipeline.cache_info().hits == hits + 1
