"""
ModKeeper 数据模型包

包含配置模型、锁文件模型和 API 模型定义。
"""

from modkeeper.models.config import (
    Platform,
    ReleaseType,
    ModLoader,
    DeclaredItem,
    Manifest,
    RuntimeSettings,
)
from modkeeper.models.api import (
    ResolutionConstraints,
    RemoteArtifactDescriptor,
    Candidate,
    FingerprintFile,
    FingerprintMatch,
    FingerprintMatchResult,
)
from modkeeper.models.lock import InstalledArtifact

__all__ = [
    # 配置模型
    "Platform",
    "ReleaseType",
    "ModLoader",
    "DeclaredItem",
    "Manifest",
    "RuntimeSettings",
    # API 模型
    "ResolutionConstraints",
    "RemoteArtifactDescriptor",
    "Candidate",
    "FingerprintFile",
    "FingerprintMatch",
    "FingerprintMatchResult",
    # 锁文件模型
    "InstalledArtifact",
]
