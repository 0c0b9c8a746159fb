"""
配置数据模型

定义模组清单（modlist）及运行时设置。
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from modkeeper.exceptions import ConfigParseError


class Platform(Enum):
    """模组仓库平台"""

    CURSEFORGE = "curseforge"
    MODRINTH = "modrinth"

    @classmethod
    def parse(cls, value: str) -> "Platform":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigParseError(f"未知的平台: {value}") from None


class ReleaseType(Enum):
    """发布类型"""

    RELEASE = "release"
    BETA = "beta"
    ALPHA = "alpha"

    @classmethod
    def parse_many(cls, values: List[str]) -> List["ReleaseType"]:
        try:
            return [cls(v.strip().lower()) for v in values]
        except ValueError as e:
            raise ConfigParseError(f"未知的发布类型: {e}") from None


class ModLoader(Enum):
    """模组加载器"""

    FORGE = "forge"
    FABRIC = "fabric"
    QUILT = "quilt"
    NEOFORGE = "neoforge"

    @classmethod
    def parse(cls, value: str) -> "ModLoader":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigParseError(
                "loader 必须为 forge/fabric/quilt/neoforge", context={"loader": value}
            ) from None


@dataclass
class DeclaredItem:
    """清单中声明的模组"""

    platform: Platform
    id: str
    allowed_release_types: Optional[List[ReleaseType]] = None
    name: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        """锁文件查找键（平台 + 小写 ID）"""
        return self.platform.value, self.id.lower()

    @property
    def label(self) -> str:
        return self.name or self.id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeclaredItem":
        if "type" not in data or "id" not in data:
            raise ConfigParseError("模组条目缺少 type 或 id", context={"entry": data})
        release_types = data.get("allowedReleaseTypes")
        return cls(
            platform=Platform.parse(data["type"]),
            id=str(data["id"]),
            allowed_release_types=(
                ReleaseType.parse_many(release_types) if release_types else None
            ),
            name=data.get("name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.platform.value, "id": self.id}
        if self.name is not None:
            data["name"] = self.name
        if self.allowed_release_types:
            data["allowedReleaseTypes"] = [t.value for t in self.allowed_release_types]
        return data


@dataclass
class Manifest:
    """模组清单：声明的模组及全局默认值"""

    loader: ModLoader
    game_version: str
    default_allowed_release_types: List[ReleaseType]
    mods_folder: str = "mods"
    allow_version_fallback: bool = False
    mods: List[DeclaredItem] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = (
        "loader",
        "gameVersion",
        "defaultAllowedReleaseTypes",
        "modsFolder",
        "allowVersionFallback",
        "mods",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """从配置字典构建清单，未知字段原样保留"""
        if not isinstance(data, dict):
            raise ConfigParseError("配置文件内容必须是对象")
        if not data.get("gameVersion"):
            raise ConfigParseError("请配置 gameVersion")
        if not data.get("loader"):
            raise ConfigParseError("请配置 loader")

        release_types = data.get("defaultAllowedReleaseTypes") or ["release", "beta"]
        allow_fallback = data.get("allowVersionFallback", False)
        if not isinstance(allow_fallback, bool):
            raise ConfigParseError(
                "allowVersionFallback 必须为 true 或 false",
                context={"allowVersionFallback": allow_fallback},
            )
        return cls(
            loader=ModLoader.parse(data["loader"]),
            game_version=str(data["gameVersion"]),
            default_allowed_release_types=ReleaseType.parse_many(release_types),
            mods_folder=data.get("modsFolder", "mods"),
            allow_version_fallback=allow_fallback,
            mods=[DeclaredItem.from_dict(m) for m in data.get("mods", [])],
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "loader": self.loader.value,
            "gameVersion": self.game_version,
            "defaultAllowedReleaseTypes": [
                t.value for t in self.default_allowed_release_types
            ],
            "modsFolder": self.mods_folder,
            "allowVersionFallback": self.allow_version_fallback,
            "mods": [m.to_dict() for m in self.mods],
        }
        data.update(self.extra)
        return data


@dataclass(frozen=True)
class RuntimeSettings:
    """从环境变量读取的运行时设置"""

    curseforge_api_key: Optional[str] = None
    modrinth_api_key: Optional[str] = None
    max_retries: int = 3
    retry_interval: float = 1.0
    rate_limit: float = 10.0

    def api_key_for(self, platform: Platform) -> Optional[str]:
        if platform == Platform.CURSEFORGE:
            return self.curseforge_api_key
        return self.modrinth_api_key

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "RuntimeSettings":
        env = os.environ if environ is None else environ
        try:
            return cls(
                curseforge_api_key=env.get("CURSEFORGE_API_KEY") or None,
                modrinth_api_key=env.get("MODRINTH_API_KEY") or None,
                max_retries=int(env.get("MODKEEPER_MAX_RETRIES", 3)),
                retry_interval=float(env.get("MODKEEPER_RETRY_INTERVAL", 1.0)),
                rate_limit=float(env.get("MODKEEPER_RATE_LIMIT", 10.0)),
            )
        except ValueError as e:
            raise ConfigParseError(f"环境变量格式错误: {e}") from None
