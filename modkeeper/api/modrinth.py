from typing import List, Optional

from modkeeper.api.base import RepositoryAdapter
from modkeeper.models import Candidate, Platform, ReleaseType

MODRINTH_BASE_URL = "https://api.modrinth.com/v2"


def _release_type(value: Optional[str]) -> Optional[ReleaseType]:
    try:
        return ReleaseType(value)
    except ValueError:
        return None


class ModrinthAPI(RepositoryAdapter):

    platform = Platform.MODRINTH

    def __init__(self, transport, matcher=None, api_key: Optional[str] = None):
        super().__init__(transport, matcher)
        self.headers = {"Accept": "application/json"}
        if api_key:
            self.headers["Authorization"] = api_key

    async def _request(self, endpoint: str, remote_id: str):
        response = await self.transport.get(
            f"{MODRINTH_BASE_URL}{endpoint}", headers=self.headers
        )
        self._check_status(response, remote_id)
        return await response.json()

    async def get_name(self, remote_id: str) -> str:
        project = await self._request(f"/project/{remote_id}", remote_id)
        return project["title"]

    async def get_candidates(self, remote_id: str) -> List[Candidate]:
        versions = await self._request(f"/project/{remote_id}/version", remote_id)
        candidates = []
        for version in versions:
            files = version.get("files", [])
            if not files:
                continue
            # 优先选择 primary 文件，否则取第一个
            file = next((f for f in files if f.get("primary")), files[0])
            candidates.append(
                Candidate(
                    file_name=file["filename"],
                    release_date=version["date_published"],
                    release_type=_release_type(version.get("version_type")),
                    loaders=version.get("loaders", []),
                    game_versions=version.get("game_versions", []),
                    hash=file.get("hashes", {}).get("sha1", ""),
                    download_url=file["url"],
                )
            )
        return candidates
