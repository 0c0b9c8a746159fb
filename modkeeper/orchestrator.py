"""
主协调器

把模组清单与锁文件、远程仓库对账：逐个模组决定安装、重新下载、更新或保持不变，
所有模组并发处理，全部结束后统一写回锁文件和清单。
"""

import asyncio
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from aiolimiter import AsyncLimiter
from loguru import logger

from modkeeper.api import RepositoryAdapter, get_adapter
from modkeeper.download import DownloadManager, FileVerifier
from modkeeper.exceptions import (
    DownloadChecksumError,
    IntegrityError,
    ItemNotFound,
    ModKeeperError,
    NoMatchFound,
    UnexpectedError,
    UnsupportedPlatform,
)
from modkeeper.logger import LogSink
from modkeeper.models import (
    DeclaredItem,
    InstalledArtifact,
    Manifest,
    Platform,
    RemoteArtifactDescriptor,
    ResolutionConstraints,
    RuntimeSettings,
)
from modkeeper.services import (
    RateLimitedTransport,
    RetryConfig,
    StateStore,
    lock_path_for,
)
from modkeeper.services.version_matcher import parse_release_date


class ItemAction(Enum):
    """单个模组的处理结果"""

    INSTALLED = "installed"
    REDOWNLOADED = "redownloaded"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass
class ItemResult:
    """单个模组的对账结果"""

    item: DeclaredItem
    action: ItemAction
    artifact: Optional[InstalledArtifact] = None
    name: Optional[str] = None
    error: Optional[ModKeeperError] = None

    @property
    def message(self) -> Optional[str]:
        if self.error is None:
            return None
        return describe_failure(self.error, self.item)


@dataclass
class ReconcileReport:
    """一次对账的汇总"""

    results: List[ItemResult] = field(default_factory=list)
    lock: List[InstalledArtifact] = field(default_factory=list)

    @property
    def failures(self) -> List[ItemResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def ok(self) -> bool:
        return not self.failures


def describe_failure(error: ModKeeperError, item: DeclaredItem) -> str:
    """为失败的模组生成一条可读的错误信息"""
    platform = item.platform.value
    if isinstance(error, ItemNotFound):
        return f"{item.label}: 在 {platform} 上找不到项目 {item.id}，请检查 ID 是否正确"
    if isinstance(error, NoMatchFound):
        return f"{item.label}: {platform} 上没有符合加载器、游戏版本和发布类型的文件"
    if isinstance(error, IntegrityError):
        return f"{item.label}: {error.message}"
    return f"{item.label}: {error}"


class ReconcileOrchestrator:
    """
    对账协调器

    每个模组在独立任务中处理，任务之间没有共享的可变状态；
    结果在全部任务结束后按顺序合并到锁文件。
    """

    def __init__(
        self,
        manifest: Manifest,
        lock: List[InstalledArtifact],
        mods_folder: str,
        adapters: Mapping[Platform, RepositoryAdapter],
        downloader: DownloadManager,
        verifier: FileVerifier = FileVerifier(),
        log: LogSink = logger,
        check_updates: bool = False,
    ):
        self.manifest = manifest
        self.lock = lock
        self.mods_folder = mods_folder
        self.adapters = adapters
        self.downloader = downloader
        self.verifier = verifier
        self.log = log
        self.check_updates = check_updates
        # 目标文件 -> 占用它的模组；锁文件中已有的文件属于各自的记录
        self._claims: Dict[str, tuple[str, str]] = {
            self._target(a.file_name): a.key for a in lock
        }

    async def run(self) -> ReconcileReport:
        """并发处理全部模组，等待完成后合并结果"""
        results = await asyncio.gather(
            *(self._process(item) for item in self.manifest.mods)
        )
        return ReconcileReport(results=list(results), lock=self._merge(results))

    def _merge(self, results: List[ItemResult]) -> List[InstalledArtifact]:
        """把成功的结果合并进锁文件，失败的模组保留原有记录"""
        lock = list(self.lock)
        index: Dict[tuple[str, str], int] = {a.key: i for i, a in enumerate(lock)}
        for result in results:
            if result.name:
                result.item.name = result.name
            if result.artifact is None:
                continue
            key = result.artifact.key
            if key in index:
                lock[index[key]] = result.artifact
            else:
                index[key] = len(lock)
                lock.append(result.artifact)
        return lock

    def _find_installation(self, item: DeclaredItem) -> Optional[InstalledArtifact]:
        """按 (平台, ID) 查找锁文件记录，ID 不区分大小写"""
        matches = [a for a in self.lock if a.key == item.key]
        if len(matches) > 1:
            raise IntegrityError(
                f"锁文件中存在 {len(matches)} 条 {item.platform.value}/{item.id} 的记录，"
                "请删除锁文件和模组目录后重试",
                context={"platform": item.platform.value, "id": item.id},
            )
        return matches[0] if matches else None

    def _constraints(self, item: DeclaredItem) -> ResolutionConstraints:
        return ResolutionConstraints(
            allowed_release_types=frozenset(
                item.allowed_release_types
                or self.manifest.default_allowed_release_types
            ),
            game_version=self.manifest.game_version,
            loader=self.manifest.loader.value,
            allow_version_fallback=self.manifest.allow_version_fallback,
        )

    def _adapter(self, item: DeclaredItem) -> RepositoryAdapter:
        adapter = self.adapters.get(item.platform)
        if adapter is None:
            raise UnsupportedPlatform(f"不支持的平台: {item.platform.value}")
        return adapter

    async def _process(self, item: DeclaredItem) -> ItemResult:
        """单个模组的工作单元，所有错误都在这里截获"""
        try:
            return await self._reconcile(item)
        except ModKeeperError as e:
            result = ItemResult(item, ItemAction.FAILED, error=e)
        except Exception as e:
            result = ItemResult(
                item,
                ItemAction.FAILED,
                error=UnexpectedError(str(e), context={"type": type(e).__name__}),
            )
        self.log.error(result.message)
        return result

    async def _reconcile(self, item: DeclaredItem) -> ItemResult:
        self.log.debug(f"检查 {item.label} ({item.platform.value})")

        installed = self._find_installation(item)
        if installed is None:
            return await self._install(item)

        path = os.path.join(self.mods_folder, installed.file_name)

        if not self.verifier.exists(path):
            self.log.info(
                f"{item.label} 不存在，从 {installed.download_url} 重新下载"
            )
            await self._fetch(item, installed.download_url, path, installed.hash)
            return ItemResult(item, ItemAction.REDOWNLOADED)

        local_hash = await self.verifier.calc_sha1(path)
        if local_hash != installed.hash:
            self.log.info(f"{item.label} 的哈希不一致，从源重新获取")
            remote = await self._resolve(item)
            if not self._is_newer(remote, installed):
                self.log.warning(
                    f"{item.label} 的远程版本并不比本地新，本地文件可能已被修改，仍然替换"
                )
            return await self._replace(item, installed, path, remote)

        if self.check_updates:
            remote = await self._resolve(item)
            # 仓库未提供哈希时只比较发布时间
            changed = bool(remote.hash) and remote.hash != installed.hash
            if changed or self._is_newer(remote, installed):
                self.log.info(f"{remote.name} 有更新，正在下载...")
                return await self._replace(item, installed, path, remote)
            return ItemResult(item, ItemAction.UNCHANGED, name=remote.name)

        return ItemResult(item, ItemAction.UNCHANGED)

    async def _resolve(self, item: DeclaredItem) -> RemoteArtifactDescriptor:
        return await self._adapter(item).resolve(item.id, self._constraints(item))

    async def _install(self, item: DeclaredItem) -> ItemResult:
        remote = await self._resolve(item)
        self.log.info(f"{remote.name} 尚未安装，从 {item.platform.value} 下载")

        path = os.path.join(self.mods_folder, remote.file_name)
        sha1 = await self._fetch(item, remote.download_url, path, remote.hash)
        return ItemResult(
            item,
            ItemAction.INSTALLED,
            artifact=InstalledArtifact.from_remote(item, remote, sha1),
            name=remote.name,
        )

    async def _replace(
        self,
        item: DeclaredItem,
        installed: InstalledArtifact,
        old_path: str,
        remote: RemoteArtifactDescriptor,
    ) -> ItemResult:
        """下载新文件并整体替换锁文件记录"""
        new_path = os.path.join(self.mods_folder, remote.file_name)
        sha1 = await self._fetch(item, remote.download_url, new_path, remote.hash)
        if os.path.abspath(new_path) != os.path.abspath(old_path) and os.path.exists(
            old_path
        ):
            os.remove(old_path)
        return ItemResult(
            item,
            ItemAction.UPDATED,
            artifact=InstalledArtifact.from_remote(item, remote, sha1),
            name=remote.name,
        )

    def _target(self, file_name: str) -> str:
        return os.path.normcase(os.path.abspath(os.path.join(self.mods_folder, file_name)))

    def _claim(self, item: DeclaredItem, path: str) -> None:
        """登记要写入的文件，同一个文件只能属于一个模组"""
        owner = self._claims.setdefault(self._target(path), item.key)
        if owner != item.key:
            raise IntegrityError(
                f"{os.path.basename(path)} 已属于 {owner[0]}/{owner[1]}",
                context={"file": path, "owner": list(owner)},
            )

    async def _fetch(
        self, item: DeclaredItem, url: str, path: str, expected_hash: str
    ) -> str:
        """
        下载到临时文件，SHA1 校验通过后再替换到 path

        Returns:
            下载文件的 SHA1；仓库未提供哈希时以它作为锁文件记录
        """
        self._claim(item, path)
        staging = f"{path}.download"
        try:
            await self.downloader.download(url, staging)
            sha1 = await self.verifier.calc_sha1(staging)
            if expected_hash and sha1 != expected_hash:
                raise DownloadChecksumError(
                    f"SHA1 校验失败: {os.path.basename(path)}",
                    context={"file": path, "expected": expected_hash, "actual": sha1},
                )
            os.replace(staging, path)
        finally:
            if os.path.exists(staging):
                os.remove(staging)
        return sha1

    @staticmethod
    def _is_newer(remote: RemoteArtifactDescriptor, installed: InstalledArtifact) -> bool:
        return parse_release_date(remote.release_date) > parse_release_date(
            installed.released_on
        )


def resolve_mods_folder(config_path: str, manifest: Manifest) -> str:
    """模组目录相对于配置文件所在目录"""
    base = os.path.dirname(os.path.abspath(config_path))
    return os.path.join(base, manifest.mods_folder)


def build_transport(settings: RuntimeSettings) -> RateLimitedTransport:
    return RateLimitedTransport(
        limiter=AsyncLimiter(settings.rate_limit, 1),
        retry=RetryConfig(settings.max_retries, settings.retry_interval),
        headers={"User-Agent": "modkeeper"},
    )


async def reconcile(
    config_path: str,
    log: LogSink = logger,
    check_updates: bool = False,
    store: Optional[StateStore] = None,
    settings: Optional[RuntimeSettings] = None,
    adapters: Optional[Mapping[Platform, RepositoryAdapter]] = None,
    downloader: Optional[DownloadManager] = None,
) -> ReconcileReport:
    """
    对账入口

    Args:
        config_path: 模组清单路径
        log: 日志对象
        check_updates: 是否对已是最新的模组也查询远程更新
        store / settings / adapters / downloader: 可替换的协作对象

    Returns:
        ReconcileReport，包含每个模组的结果

    Raises:
        ConfigFileNotFound: 配置文件不存在
    """
    store = store or StateStore()
    settings = settings or RuntimeSettings.from_env()

    manifest = await store.ensure_configuration(config_path)
    lock = await store.read_lock_record(lock_path_for(config_path))
    mods_folder = resolve_mods_folder(config_path, manifest)
    os.makedirs(mods_folder, exist_ok=True)

    transport = None
    if adapters is None:
        transport = build_transport(settings)
        adapters = {p: get_adapter(p, transport, settings) for p in Platform}
    owned_downloader = downloader is None
    if downloader is None:
        downloader = DownloadManager(
            RetryConfig(settings.max_retries, settings.retry_interval)
        )

    try:
        orchestrator = ReconcileOrchestrator(
            manifest,
            lock,
            mods_folder,
            adapters,
            downloader,
            log=log,
            check_updates=check_updates,
        )
        report = await orchestrator.run()
    finally:
        if transport is not None:
            await transport.close()
        if owned_downloader:
            await downloader.close()

    await store.write_state(report.lock, manifest, config_path)

    if report.ok:
        log.success(f"完成! 共处理 {len(report.results)} 个模组")
    else:
        log.warning(f"{len(report.failures)} 个模组处理失败")
    return report


async def install(config_path: str, log: LogSink = logger, **kwargs) -> ReconcileReport:
    """安装缺失的模组，修复丢失或被修改的文件"""
    return await reconcile(config_path, log, check_updates=False, **kwargs)


async def update(config_path: str, log: LogSink = logger, **kwargs) -> ReconcileReport:
    """在 install 的基础上，同时检查已安装模组的远程更新"""
    return await reconcile(config_path, log, check_updates=True, **kwargs)
