from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from modkeeper.models import InstalledArtifact, RuntimeSettings

if TYPE_CHECKING:
    from collections.abc import Callable


@pytest.fixture
def settings() -> RuntimeSettings:
    return RuntimeSettings(max_retries=0, retry_interval=0.0)


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[..., Path]:
    def write(mods: list[dict[str, Any]], **overrides: Any) -> Path:
        data: dict[str, Any] = {
            "loader": "fabric",
            "gameVersion": "1.20.1",
            "defaultAllowedReleaseTypes": ["release", "beta"],
            "modsFolder": "mods",
            "allowVersionFallback": False,
            "mods": mods,
        }
        data.update(overrides)
        path = tmp_path / "modlist.json"
        path.write_text(json.dumps(data))
        return path

    return write


@pytest.fixture
def write_lock(tmp_path: Path) -> Callable[[list[InstalledArtifact]], Path]:
    def write(artifacts: list[InstalledArtifact]) -> Path:
        path = tmp_path / "modlist-lock.json"
        path.write_text(json.dumps([a.to_dict() for a in artifacts]))
        return path

    return write


@pytest.fixture
def mods_dir(tmp_path: Path) -> Path:
    path = tmp_path / "mods"
    path.mkdir()
    return path
