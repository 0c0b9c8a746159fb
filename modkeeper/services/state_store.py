"""
本地状态存储

读写模组清单（modlist）和锁文件（modlist-lock.json）。
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import toml
import yaml

from modkeeper.exceptions import ConfigFileNotFound, ConfigParseError
from modkeeper.models import InstalledArtifact, Manifest


def lock_path_for(config_path: str) -> str:
    """modlist.json -> modlist-lock.json"""
    path = Path(config_path)
    return str(path.with_name(f"{path.stem}-lock.json"))


def _loads(text: str, suffix: str) -> Dict[str, Any]:
    if suffix == ".toml":
        return toml.loads(text)
    elif suffix == ".json":
        return json.loads(text)
    elif suffix in (".yaml", ".yml"):
        return yaml.safe_load(text)
    else:
        raise ConfigParseError(f"不支持的配置文件格式: {suffix}")


def _dumps(data: Dict[str, Any], suffix: str) -> str:
    if suffix == ".toml":
        return toml.dumps(data)
    elif suffix in (".yaml", ".yml"):
        return yaml.safe_dump(data, allow_unicode=True, sort_keys=False)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


async def _write_text(path: str, text: str) -> None:
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(text)


class StateStore:
    """清单与锁文件的读写"""

    async def file_exists(self, path: str) -> bool:
        return os.path.exists(path)

    async def ensure_configuration(self, path: str) -> Manifest:
        """
        读取模组清单

        Raises:
            ConfigFileNotFound: 配置文件不存在
            ConfigParseError: 配置文件无法解析
        """
        if not await self.file_exists(path):
            raise ConfigFileNotFound(path)

        async with aiofiles.open(path, encoding="utf-8") as f:
            text = await f.read()
        try:
            data = _loads(text, Path(path).suffix.lower())
        except (ValueError, toml.TomlDecodeError, yaml.YAMLError) as e:
            raise ConfigParseError(f"配置文件解析失败: {e}", context={"path": path})
        return Manifest.from_dict(data)

    async def read_lock_record(self, path: str) -> List[InstalledArtifact]:
        """读取锁文件，不存在时返回空列表"""
        if not await self.file_exists(path):
            return []

        async with aiofiles.open(path, encoding="utf-8") as f:
            text = await f.read()
        try:
            entries = json.loads(text)
        except ValueError as e:
            raise ConfigParseError(f"锁文件解析失败: {e}", context={"path": path})
        return [InstalledArtifact.from_dict(entry) for entry in entries]

    async def write_lock_record(
        self, artifacts: List[InstalledArtifact], path: str
    ) -> None:
        await _write_text(path, _dumps([a.to_dict() for a in artifacts], ".json"))

    async def write_configuration(self, manifest: Manifest, path: str) -> None:
        await _write_text(path, _dumps(manifest.to_dict(), Path(path).suffix.lower()))

    async def write_state(
        self,
        artifacts: List[InstalledArtifact],
        manifest: Manifest,
        config_path: str,
    ) -> None:
        """
        同时写入锁文件和清单

        两个文件先完整写入临时文件，再依次 os.replace（先锁文件后清单）。
        唯一可能不一致的窗口是两次重命名之间。
        """
        lock_path = lock_path_for(config_path)
        lock_tmp = f"{lock_path}.tmp"
        config_tmp = f"{config_path}.tmp"

        try:
            await self.write_lock_record(artifacts, lock_tmp)
            await _write_text(
                config_tmp,
                _dumps(manifest.to_dict(), Path(config_path).suffix.lower()),
            )
        except BaseException:
            for tmp in (lock_tmp, config_tmp):
                if os.path.exists(tmp):
                    os.remove(tmp)
            raise

        os.replace(lock_tmp, lock_path)
        os.replace(config_tmp, config_path)
