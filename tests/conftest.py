"""
Shared pytest fixtures: stub adapters and registries built from them.
"""
import asyncio
import tempfile
from pathlib import Path

import pytest
import yaml  # type: ignore[import-untyped]

from adapters.enhancement.base import BaseEnhancementAdapter
from adapters.enhancement.schemas import StageName, StageOutput
from services.registry.adapter_registry import AdapterRegistry


class StubAdapter(BaseEnhancementAdapter):
    """Deterministic adapter with switchable failure modes"""

    version = "0.0.1"
    validation_hint = "stub rejects this input"

    def __init__(
        self,
        stage: StageName,
        quality: float | None = None,
        impact: float | None = None,
        fail: bool = False,
        delay: float = 0.0,
        valid: bool = True,
        available: bool = True,
        init_ok: bool = True,
    ):
        super().__init__()
        self.stage = stage
        self.name = f"stub-{stage.value}"
        self.quality = quality
        self.impact = impact
        self.fail = fail
        self.delay = delay
        self.valid = valid
        self.available = available
        self.init_ok = init_ok
        self.init_calls = 0
        self.execute_calls = 0

    async def execute(self, stage_input, options=None):
        self.execute_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return await super().execute(stage_input, options)

    async def _check_availability(self) -> bool:
        return self.available

    async def _perform_initialization(self) -> bool:
        self.init_calls += 1
        return self.init_ok

    def _perform_validation(self, stage_input) -> bool:
        return self.valid

    def _enrich_locally(self, stage_input, options):
        if self.fail:
            raise RuntimeError(f"{self.stage.value} exploded")
        return {"stage": self.stage.value, "options": options}

    def _build_output(self, raw) -> StageOutput:
        return StageOutput(payload=raw, quality_signal=self.quality, impact_signal=self.impact)


@pytest.fixture
def stub_adapter():
    """Factory for stub adapters"""
    return StubAdapter


@pytest.fixture
def make_registry():
    """Build a registry with one stub per stage; kwargs per stage override behavior"""

    def _make(overrides: dict | None = None, omit: tuple = ()) -> AdapterRegistry:
        overrides = overrides or {}
        registry = AdapterRegistry()
        for stage in StageName:
            if stage in omit:
                continue
            registry.register(stage, StubAdapter(stage, **overrides.get(stage, {})))
        return registry

    return _make


@pytest.fixture
def store_config_path():
    """Temp YAML config for a file-based SQLite store"""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yaml"
        config = {
            "adapter": {"type": "sqlite", "version": "1.0.0"},
            "database": {
                "path": str(Path(tmpdir) / "test.db"),
                "journal_mode": "WAL",
                "synchronous": "NORMAL",
            },
            "history": {"max_entries": 5},
        }

        with open(config_path, "w") as f:
            yaml.dump(config, f)

        yield str(config_path)
