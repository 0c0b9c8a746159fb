"""
版本匹配服务

按加载器、Minecraft 版本和发布类型筛选候选文件，并选出最新的一个。
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from modkeeper.models import Candidate, ResolutionConstraints


def parse_release_date(value: str) -> datetime:
    """解析 ISO 8601 时间（兼容结尾的 Z）"""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def major_minor(version: str) -> str:
    """1.20.4 -> 1.20"""
    return ".".join(version.split(".")[:2])


class VersionMatcher:
    """版本匹配器"""

    def matches_loader(self, candidate: Candidate, loader: str) -> bool:
        """加载器匹配（不区分大小写）"""
        return loader.lower() in [l.lower() for l in candidate.loaders]

    def matches_game_version(
        self,
        candidate: Candidate,
        game_version: str,
        allow_fallback: bool = False,
    ) -> bool:
        """
        检查候选文件是否支持目标 Minecraft 版本

        精确匹配优先；开启回退后，主次版本号相同即可（忽略补丁号）。
        """
        if game_version in candidate.game_versions:
            return True
        if not allow_fallback:
            return False
        target = major_minor(game_version)
        return any(major_minor(v) == target for v in candidate.game_versions)

    def filter(
        self,
        candidates: Iterable[Candidate],
        constraints: ResolutionConstraints,
    ) -> List[Candidate]:
        """按约束筛选并按发布时间倒序排列（时间相同保持原顺序）"""
        eligible = [
            c
            for c in candidates
            if self.matches_loader(c, constraints.loader)
            and self.matches_game_version(
                c, constraints.game_version, constraints.allow_version_fallback
            )
            and c.release_type in constraints.allowed_release_types
        ]
        return sorted(
            eligible, key=lambda c: parse_release_date(c.release_date), reverse=True
        )

    def select(
        self,
        candidates: Iterable[Candidate],
        constraints: ResolutionConstraints,
    ) -> Optional[Candidate]:
        """
        选出最新的候选文件

        Returns:
            最新的候选文件，没有符合条件的则返回 None
        """
        eligible = self.filter(candidates, constraints)
        return eligible[0] if eligible else None
