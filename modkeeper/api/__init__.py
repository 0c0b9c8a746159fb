"""
ModKeeper 仓库适配器

按平台选择对应的适配器实现。
"""

from typing import Dict, Optional, Type

from modkeeper.api.base import RepositoryAdapter
from modkeeper.api.curseforge import CurseForgeAPI
from modkeeper.api.modrinth import ModrinthAPI
from modkeeper.exceptions import UnsupportedPlatform
from modkeeper.models import Platform, RuntimeSettings
from modkeeper.services.transport import RateLimitedTransport

ADAPTERS: Dict[Platform, Type[RepositoryAdapter]] = {
    Platform.CURSEFORGE: CurseForgeAPI,
    Platform.MODRINTH: ModrinthAPI,
}


def get_adapter(
    platform: Platform,
    transport: RateLimitedTransport,
    settings: Optional[RuntimeSettings] = None,
) -> RepositoryAdapter:
    """根据平台创建适配器"""
    settings = settings or RuntimeSettings()
    adapter_cls = ADAPTERS.get(platform)
    if adapter_cls is None:
        raise UnsupportedPlatform(f"不支持的平台: {platform}")
    return adapter_cls(transport, api_key=settings.api_key_for(platform))


__all__ = [
    "ADAPTERS",
    "RepositoryAdapter",
    "CurseForgeAPI",
    "ModrinthAPI",
    "get_adapter",
]
