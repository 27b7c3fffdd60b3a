"""Tests for the agent entrypoint — startup errors and wiring."""

from __future__ import annotations

import argparse
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml

from scripts.run import run


def _args(config: Path, **kw: object) -> argparse.Namespace:
    defaults: dict[str, object] = {"config": str(config), "log_level": None, "log_format": "console"}
    defaults.update(kw)
    return argparse.Namespace(**defaults)


class TestRun:
    async def test_missing_config_exits_1(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await run(_args(tmp_path / "missing.yaml")) == 1
        assert "could not read config file" in capsys.readouterr().err

    async def test_invalid_config_exits_1(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"store": {"path": "x.db"}}))
        assert await run(_args(config_file)) == 1

    async def test_wires_store_and_coordinator(self, tmp_path: Path) -> None:
        db_path = tmp_path / "data" / "incidents.db"
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            yaml.dump({"schedule": "0 * * * * *", "store": {"path": str(db_path)}})
        )

        coordinator = MagicMock()
        coordinator.run = AsyncMock(return_value=0)
        coordinator.generation = 1
        with patch("scripts.run.Coordinator", return_value=coordinator) as factory:
            assert await run(_args(config_file, log_level="DEBUG")) == 0

        factory.assert_called_once()
        config_path, settings, store, _ = factory.call_args[0]
        assert config_path == config_file
        assert settings.schedule == "0 * * * * *"
        assert store.path == db_path
        assert factory.call_args.kwargs == {"log_level": "DEBUG", "log_format": "console"}
        assert db_path.exists()
        coordinator.run.assert_awaited_once()
