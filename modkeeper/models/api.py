"""
API 数据模型

定义仓库查询相关的数据类：解析约束、候选版本、远程文件描述及指纹匹配结果。
"""

from dataclasses import dataclass, field
from typing import List, Optional, FrozenSet

from modkeeper.models.config import ReleaseType


@dataclass(frozen=True)
class ResolutionConstraints:
    """版本解析约束"""

    allowed_release_types: FrozenSet[ReleaseType]
    game_version: str
    loader: str
    allow_version_fallback: bool = False


@dataclass(frozen=True)
class RemoteArtifactDescriptor:
    """
    远程文件描述。

    每次解析时重新生成，只有在下载成功后才会写入锁文件。
    """

    name: str
    file_name: str
    release_date: str
    hash: str
    download_url: str


@dataclass
class Candidate:
    """仓库返回的单个候选文件（已标准化）"""

    file_name: str
    release_date: str
    release_type: Optional[ReleaseType]
    loaders: List[str]
    game_versions: List[str]
    hash: str
    download_url: str


@dataclass(frozen=True)
class FingerprintFile:
    """指纹匹配到的远程文件"""

    id: int
    project_id: int
    file_name: str
    release_date: str
    hash: str
    download_url: str
    fingerprint: int


@dataclass(frozen=True)
class FingerprintMatch:
    """单个指纹匹配"""

    project_id: int
    file: FingerprintFile
    latest_files: List[FingerprintFile] = field(default_factory=list)


@dataclass
class FingerprintMatchResult:
    """
    批量指纹匹配结果。

    三类结果分开保存：
        exact: 完全匹配，可直接纳入管理
        partial: 部分匹配，需要用户确认
        unmatched: 未匹配，保持为手动管理的文件
    installed 为仓库报告的已安装指纹，目前仅作为扩展点保留。
    """

    exact: List[FingerprintMatch] = field(default_factory=list)
    exact_fingerprints: List[int] = field(default_factory=list)
    partial: List[FingerprintMatch] = field(default_factory=list)
    partial_fingerprints: List[int] = field(default_factory=list)
    unmatched: List[int] = field(default_factory=list)
    installed: List[int] = field(default_factory=list)
