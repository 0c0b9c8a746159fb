from __future__ import annotations

import json
from pathlib import Path

import pytest
import toml
import yaml

from modkeeper.exceptions import ConfigFileNotFound, ConfigParseError
from modkeeper.models import ModLoader, Platform, ReleaseType
from modkeeper.services import StateStore, lock_path_for
from tests.helpers.fakes import make_artifact

MANIFEST = {
    "loader": "fabric",
    "gameVersion": "1.20.1",
    "defaultAllowedReleaseTypes": ["release"],
    "modsFolder": "mods",
    "allowVersionFallback": True,
    "mods": [
        {"type": "modrinth", "id": "AANobbMI", "name": "Sodium"},
        {"type": "curseforge", "id": "238222", "allowedReleaseTypes": ["beta"]},
    ],
}


def test_lock_path_is_derived_from_the_manifest_stem() -> None:
    assert lock_path_for("/srv/pack/modlist.json") == "/srv/pack/modlist-lock.json"
    assert lock_path_for("/srv/pack/mods.toml") == "/srv/pack/mods-lock.json"


async def test_missing_configuration_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigFileNotFound):
        await StateStore().ensure_configuration(str(tmp_path / "modlist.json"))


@pytest.mark.parametrize(
    ("name", "dump"),
    [
        ("modlist.json", json.dumps),
        ("modlist.toml", toml.dumps),
        ("modlist.yaml", yaml.safe_dump),
    ],
)
async def test_manifest_formats_are_chosen_by_suffix(tmp_path: Path, name, dump) -> None:
    path = tmp_path / name
    path.write_text(dump(MANIFEST))

    manifest = await StateStore().ensure_configuration(str(path))

    assert manifest.loader is ModLoader.FABRIC
    assert manifest.game_version == "1.20.1"
    assert manifest.allow_version_fallback is True
    assert manifest.default_allowed_release_types == [ReleaseType.RELEASE]
    assert [m.platform for m in manifest.mods] == [Platform.MODRINTH, Platform.CURSEFORGE]
    assert manifest.mods[0].name == "Sodium"
    assert manifest.mods[1].allowed_release_types == [ReleaseType.BETA]


async def test_unparseable_manifest_raises(tmp_path: Path) -> None:
    path = tmp_path / "modlist.json"
    path.write_text("{not json")

    with pytest.raises(ConfigParseError):
        await StateStore().ensure_configuration(str(path))


async def test_manifest_without_loader_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "modlist.json"
    path.write_text(json.dumps({"gameVersion": "1.20.1", "mods": []}))

    with pytest.raises(ConfigParseError):
        await StateStore().ensure_configuration(str(path))


async def test_missing_lock_reads_as_empty(tmp_path: Path) -> None:
    assert await StateStore().read_lock_record(str(tmp_path / "modlist-lock.json")) == []


async def test_lock_record_round_trip_uses_camel_case_keys(tmp_path: Path) -> None:
    store = StateStore()
    path = str(tmp_path / "modlist-lock.json")
    artifact = make_artifact("AANobbMI", "sodium.jar", b"jar", name="Sodium")

    await store.write_lock_record([artifact], path)

    raw = json.loads(Path(path).read_text())
    assert raw[0]["type"] == "modrinth"
    assert raw[0]["fileName"] == "sodium.jar"
    assert set(raw[0]) == {
        "name",
        "type",
        "id",
        "fileName",
        "releasedOn",
        "hash",
        "downloadUrl",
    }
    assert await store.read_lock_record(path) == [artifact]


async def test_lock_entry_missing_a_field_raises(tmp_path: Path) -> None:
    path = tmp_path / "modlist-lock.json"
    path.write_text(json.dumps([{"name": "x", "type": "modrinth"}]))

    with pytest.raises(ConfigParseError):
        await StateStore().read_lock_record(str(path))


async def test_write_state_replaces_both_files(tmp_path: Path) -> None:
    store = StateStore()
    config_path = tmp_path / "modlist.json"
    config_path.write_text(json.dumps({**MANIFEST, "packAuthor": "steve"}))
    manifest = await store.ensure_configuration(str(config_path))
    manifest.mods[1].name = "JEI"
    artifact = make_artifact("238222", "jei.jar", b"jei", platform=Platform.CURSEFORGE)

    await store.write_state([artifact], manifest, str(config_path))

    written = json.loads(config_path.read_text())
    assert written["packAuthor"] == "steve"
    assert written["mods"][1]["name"] == "JEI"
    lock = await store.read_lock_record(lock_path_for(str(config_path)))
    assert lock == [artifact]
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "modlist-lock.json",
        "modlist.json",
    ]


async def test_write_state_keeps_toml_format(tmp_path: Path) -> None:
    store = StateStore()
    config_path = tmp_path / "modlist.toml"
    config_path.write_text(toml.dumps(MANIFEST))
    manifest = await store.ensure_configuration(str(config_path))

    await store.write_state([], manifest, str(config_path))

    assert toml.loads(config_path.read_text())["gameVersion"] == "1.20.1"
    assert json.loads((tmp_path / "modlist-lock.json").read_text()) == []


@pytest.mark.parametrize("value", ["false", "yes", 0, None])
async def test_non_boolean_version_fallback_is_rejected(tmp_path: Path, value) -> None:
    path = tmp_path / "modlist.yaml"
    path.write_text(yaml.safe_dump({**MANIFEST, "allowVersionFallback": value}))

    with pytest.raises(ConfigParseError) as excinfo:
        await StateStore().ensure_configuration(str(path))

    assert "allowVersionFallback" in excinfo.value.message
