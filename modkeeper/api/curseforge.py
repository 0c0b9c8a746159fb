"""
CurseForge 仓库适配器

文件列表接口是分页的，需要按游标累积直到取完全部结果；
另提供按文件指纹批量匹配的接口。
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from modkeeper.api.base import RepositoryAdapter
from modkeeper.exceptions import RepositoryError
from modkeeper.models import (
    Candidate,
    FingerprintFile,
    FingerprintMatch,
    FingerprintMatchResult,
    Platform,
    ReleaseType,
)

CURSEFORGE_BASE_URL = "https://api.curseforge.com/v1"
CURSEFORGE_CDN_URL = "https://edge.forgecdn.net/files"
MINECRAFT_GAME_ID = 432
PAGE_SIZE = 50

RELEASE_TYPES = {
    1: ReleaseType.RELEASE,
    2: ReleaseType.BETA,
    3: ReleaseType.ALPHA,
}

HASH_ALGO_SHA1 = 1


def _sha1(file: Dict[str, Any]) -> str:
    for item in file.get("hashes", []):
        if item.get("algo") == HASH_ALGO_SHA1:
            return item["value"]
    return ""


def _download_url(file: Dict[str, Any]) -> str:
    """部分作者禁止第三方分发，此时 downloadUrl 为空，改用 CDN 地址"""
    if file.get("downloadUrl"):
        return file["downloadUrl"]
    file_id = int(file["id"])
    return f"{CURSEFORGE_CDN_URL}/{file_id // 1000}/{file_id % 1000}/{file['fileName']}"


def _fingerprint_file(file: Dict[str, Any]) -> FingerprintFile:
    return FingerprintFile(
        id=file["id"],
        project_id=file.get("modId", 0),
        file_name=file["fileName"],
        release_date=file["fileDate"],
        hash=_sha1(file),
        download_url=_download_url(file),
        fingerprint=file.get("fileFingerprint", 0),
    )


def _fingerprint_match(item: Dict[str, Any]) -> FingerprintMatch:
    return FingerprintMatch(
        project_id=item["id"],
        file=_fingerprint_file(item["file"]),
        latest_files=[_fingerprint_file(f) for f in item.get("latestFiles", [])],
    )


class CurseForgeAPI(RepositoryAdapter):
    """CurseForge API 适配器"""

    platform = Platform.CURSEFORGE

    def __init__(self, transport, matcher=None, api_key: Optional[str] = None):
        super().__init__(transport, matcher)
        self.headers = {"Accept": "application/json"}
        if api_key:
            self.headers["x-api-key"] = api_key

    async def get_name(self, remote_id: str) -> str:
        response = await self.transport.get(
            f"{CURSEFORGE_BASE_URL}/mods/{remote_id}", headers=self.headers
        )
        self._check_status(response, remote_id)
        data = await response.json()
        return data["data"]["name"]

    async def get_files_page(self, remote_id: str, cursor: int) -> Dict[str, Any]:
        """获取一页文件列表"""
        response = await self.transport.get(
            f"{CURSEFORGE_BASE_URL}/mods/{remote_id}/files",
            params={"index": cursor, "pageSize": PAGE_SIZE},
            headers=self.headers,
        )
        self._check_status(response, remote_id)
        return await response.json()

    async def get_files(self, remote_id: str) -> List[Dict[str, Any]]:
        """
        获取项目的全部文件

        按游标翻页，直到 cursor + resultCount >= totalCount。
        """
        files: List[Dict[str, Any]] = []
        cursor = 0
        while True:
            page = await self.get_files_page(remote_id, cursor)
            files.extend(page.get("data", []))

            pagination = page.get("pagination", {})
            result_count = pagination.get("resultCount", 0)
            total_count = pagination.get("totalCount", 0)
            if result_count == 0 or cursor + result_count >= total_count:
                break
            cursor += result_count

        logger.debug(f"[CurseForge] 项目 {remote_id} 共 {len(files)} 个文件")
        return files

    async def get_candidates(self, remote_id: str) -> List[Candidate]:
        candidates = []
        for file in await self.get_files(remote_id):
            if file.get("isAvailable") is False:
                continue
            # CurseForge 把加载器名称和游戏版本放在同一个 gameVersions 列表里
            game_versions = file.get("gameVersions", [])
            candidates.append(
                Candidate(
                    file_name=file["fileName"],
                    release_date=file["fileDate"],
                    release_type=RELEASE_TYPES.get(file.get("releaseType")),
                    loaders=game_versions,
                    game_versions=game_versions,
                    hash=_sha1(file),
                    download_url=_download_url(file),
                )
            )
        return candidates

    async def find_fingerprint_matches(
        self, fingerprints: List[int]
    ) -> FingerprintMatchResult:
        """
        批量指纹匹配

        Args:
            fingerprints: 本地文件的 CurseForge 指纹

        Returns:
            完全匹配 / 部分匹配 / 未匹配 三类结果
        """
        response = await self.transport.post(
            f"{CURSEFORGE_BASE_URL}/fingerprints/{MINECRAFT_GAME_ID}",
            json={"fingerprints": fingerprints},
            headers=self.headers,
        )
        if response.status != 200:
            raise RepositoryError(
                f"CurseForge 指纹匹配失败 (状态码: {response.status})",
                status=response.status,
            )

        data = (await response.json())["data"]
        partial_fingerprints = data.get("partialMatchFingerprints", [])
        if isinstance(partial_fingerprints, dict):
            # 接口以 {指纹: [...]} 的形式返回部分匹配
            partial_fingerprints = [int(fp) for fp in partial_fingerprints]
        return FingerprintMatchResult(
            exact=[_fingerprint_match(m) for m in data.get("exactMatches", [])],
            exact_fingerprints=data.get("exactFingerprints", []),
            partial=[_fingerprint_match(m) for m in data.get("partialMatches", [])],
            partial_fingerprints=partial_fingerprints,
            unmatched=data.get("unmatchedFingerprints", []),
            installed=data.get("installedFingerprints", []),
        )
