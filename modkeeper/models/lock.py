"""
锁文件数据模型
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from modkeeper.exceptions import ConfigParseError
from modkeeper.models.api import RemoteArtifactDescriptor
from modkeeper.models.config import DeclaredItem, Platform


@dataclass(frozen=True)
class InstalledArtifact:
    """
    磁盘上已安装文件的记录。

    首次安装时创建，更新时整体替换，从不部分修改。
    """

    name: str
    platform: Platform
    id: str
    file_name: str
    released_on: str
    hash: str
    download_url: str

    @property
    def key(self) -> tuple[str, str]:
        return self.platform.value, self.id.lower()

    @classmethod
    def from_remote(
        cls,
        item: DeclaredItem,
        remote: RemoteArtifactDescriptor,
        sha1: Optional[str] = None,
    ) -> "InstalledArtifact":
        """sha1 为实际下载文件的哈希，仓库未提供哈希时使用它"""
        return cls(
            name=remote.name,
            platform=item.platform,
            id=item.id,
            file_name=remote.file_name,
            released_on=remote.release_date,
            hash=sha1 or remote.hash,
            download_url=remote.download_url,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstalledArtifact":
        try:
            return cls(
                name=data["name"],
                platform=Platform.parse(data["type"]),
                id=str(data["id"]),
                file_name=data["fileName"],
                released_on=data["releasedOn"],
                hash=data["hash"],
                download_url=data["downloadUrl"],
            )
        except KeyError as e:
            raise ConfigParseError(
                f"锁文件条目缺少字段: {e.args[0]}", context={"entry": data}
            ) from None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.platform.value,
            "id": self.id,
            "fileName": self.file_name,
            "releasedOn": self.released_on,
            "hash": self.hash,
            "downloadUrl": self.download_url,
        }
