# buyplan/engine/registry.py
from __future__ import annotations
from typing import Any, Callable, Dict, List
from .context import StagedState, StageResult
from .config import StageConfig

# (state, stage config, assets) -> result; assets carries e.g. the engine config
StageFn = Callable[[StagedState, StageConfig, Dict[str, Any]], StageResult]


class StageRegistry:
    """Maps the ``use:`` keys of a pipeline config (e.g. ``ws.load.v1``) to stage functions."""

    def __init__(self) -> None:
        self._fns: Dict[str, StageFn] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._fns

    def __len__(self) -> int:
        return len(self._fns)

    def register(self, key: str, fn: StageFn) -> None:
        if key in self._fns:
            raise ValueError(f"Stage function already registered under {key!r}")
        self._fns[key] = fn

    def get(self, key: str) -> StageFn:
        fn = self._fns.get(key)
        if fn is None:
            raise KeyError(f"No stage function for {key!r}. Registered: {self.keys()}")
        return fn

    def keys(self) -> List[str]:
        return sorted(self._fns)
