from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from loguru import logger

from modkeeper import __version__
from modkeeper.cli import main


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_configuration_exits_non_zero(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        main, ["--config", str(tmp_path / "modlist.json"), "install"]
    )

    assert result.exit_code != 0
    assert "modlist.json" in result.output


def test_invalid_loader_exits_non_zero(tmp_path: Path) -> None:
    config = tmp_path / "modlist.json"
    config.write_text(json.dumps({"loader": "rift", "gameVersion": "1.20.1", "mods": []}))

    result = CliRunner().invoke(main, ["--config", str(config), "update"])

    assert result.exit_code != 0
    assert "loader" in result.output


def test_install_with_empty_manifest_succeeds(tmp_path: Path) -> None:
    config = tmp_path / "modlist.json"
    config.write_text(json.dumps({"loader": "fabric", "gameVersion": "1.20.1", "mods": []}))

    result = CliRunner().invoke(main, ["--config", str(config), "install"])

    assert result.exit_code == 0
    assert json.loads((tmp_path / "modlist-lock.json").read_text()) == []
