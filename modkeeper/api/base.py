from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional

import aiohttp

from modkeeper.exceptions import (
    ItemNotFound,
    NoMatchFound,
    RepositoryError,
    UnsupportedOperation,
)
from modkeeper.models import (
    Candidate,
    FingerprintMatchResult,
    Platform,
    RemoteArtifactDescriptor,
    ResolutionConstraints,
)
from modkeeper.services.transport import RateLimitedTransport
from modkeeper.services.version_matcher import VersionMatcher


class RepositoryAdapter(ABC):
    """
    模组仓库适配器。

    每个平台一个实现，所有网络请求都通过共享的 RateLimitedTransport。
    """

    platform: ClassVar[Platform]

    def __init__(
        self,
        transport: RateLimitedTransport,
        matcher: Optional[VersionMatcher] = None,
    ):
        self.transport = transport
        self.matcher = matcher or VersionMatcher()

    @abstractmethod
    async def get_candidates(self, remote_id: str) -> List[Candidate]:
        """
        获取项目的全部候选文件（分页由适配器负责合并）。
        """
        pass

    @abstractmethod
    async def get_name(self, remote_id: str) -> str:
        """
        获取项目显示名称。
        """
        pass

    async def resolve(
        self, remote_id: str, constraints: ResolutionConstraints
    ) -> RemoteArtifactDescriptor:
        """
        解析出最符合约束的远程文件。

        Raises:
            ItemNotFound: 仓库中不存在该项目
            NoMatchFound: 没有满足约束的文件
        """
        candidates = await self.get_candidates(remote_id)
        latest = self.matcher.select(candidates, constraints)
        if latest is None:
            raise NoMatchFound(remote_id, self.platform.value)

        return RemoteArtifactDescriptor(
            name=await self.get_name(remote_id),
            file_name=latest.file_name,
            release_date=latest.release_date,
            hash=latest.hash,
            download_url=latest.download_url,
        )

    async def find_fingerprint_matches(
        self, fingerprints: List[int]
    ) -> FingerprintMatchResult:
        """
        通过文件指纹批量查找远程文件。
        """
        raise UnsupportedOperation(f"{self.platform.value} 不支持指纹匹配")

    def _check_status(
        self, response: aiohttp.ClientResponse, remote_id: str
    ) -> None:
        """404 视为项目不存在，其他非 200 状态码视为仓库错误"""
        if response.status == 404:
            raise ItemNotFound(remote_id, self.platform.value)
        if response.status != 200:
            raise RepositoryError(
                f"从 {self.platform.value} 获取数据失败 "
                f"(状态码: {response.status}，URL: {response.url})",
                context={"project_id": remote_id},
                status=response.status,
            )
