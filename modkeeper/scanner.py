"""
模组目录扫描

为模组目录中未被锁文件管理的 jar 计算 CurseForge 指纹，
批量查询远程仓库，找出手动放入但其实来自 CurseForge 的文件。
"""

import glob
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from modkeeper.api import CurseForgeAPI, RepositoryAdapter
from modkeeper.download import FileVerifier
from modkeeper.logger import LogSink
from modkeeper.models import (
    DeclaredItem,
    FingerprintMatch,
    InstalledArtifact,
    Manifest,
    Platform,
    RuntimeSettings,
)
from modkeeper.orchestrator import build_transport, resolve_mods_folder
from modkeeper.services import StateStore, lock_path_for


@dataclass
class ScannedFile:
    path: str
    fingerprint: int
    match: Optional[FingerprintMatch] = None


@dataclass
class ScanReport:
    """扫描结果"""

    exact: List[ScannedFile] = field(default_factory=list)
    partial: List[ScannedFile] = field(default_factory=list)
    unmatched: List[ScannedFile] = field(default_factory=list)
    adopted: List[DeclaredItem] = field(default_factory=list)


def unmanaged_files(mods_folder: str, lock: List[InstalledArtifact]) -> List[str]:
    """模组目录中不属于任何锁文件记录的 jar"""
    managed = {a.file_name for a in lock}
    return sorted(
        path
        for path in glob.glob(os.path.join(mods_folder, "*.jar"))
        if os.path.basename(path) not in managed
    )


async def scan(
    config_path: str,
    log: LogSink = logger,
    adopt: bool = False,
    store: Optional[StateStore] = None,
    settings: Optional[RuntimeSettings] = None,
    adapter: Optional[RepositoryAdapter] = None,
    verifier: FileVerifier = FileVerifier(),
) -> ScanReport:
    """
    扫描模组目录

    Args:
        config_path: 模组清单路径
        log: 日志对象
        adopt: 是否把完全匹配的文件加入清单和锁文件

    Returns:
        ScanReport：完全匹配 / 部分匹配 / 未匹配 三类文件
    """
    store = store or StateStore()
    settings = settings or RuntimeSettings.from_env()

    manifest = await store.ensure_configuration(config_path)
    lock = await store.read_lock_record(lock_path_for(config_path))
    mods_folder = resolve_mods_folder(config_path, manifest)

    files = unmanaged_files(mods_folder, lock)
    report = ScanReport()
    if not files:
        log.info("没有未管理的文件")
        return report

    # 内容相同的文件指纹相同，每个指纹只查询一次
    by_fingerprint: Dict[int, List[ScannedFile]] = {}
    for path in files:
        scanned = ScannedFile(path, await verifier.fingerprint(path))
        by_fingerprint.setdefault(scanned.fingerprint, []).append(scanned)
    log.debug(f"{len(files)} 个文件，{len(by_fingerprint)} 个不同指纹")

    transport = None
    if adapter is None:
        transport = build_transport(settings)
        adapter = CurseForgeAPI(transport, api_key=settings.curseforge_api_key)

    try:
        result = await adapter.find_fingerprint_matches(list(by_fingerprint))

        for match in result.exact:
            for scanned in by_fingerprint.pop(match.file.fingerprint, []):
                scanned.match = match
                report.exact.append(scanned)
        for match in result.partial:
            for scanned in by_fingerprint.pop(match.file.fingerprint, []):
                scanned.match = match
                report.partial.append(scanned)
        report.unmatched = [s for group in by_fingerprint.values() for s in group]

        if adopt and report.exact:
            await _adopt(report, manifest, lock, adapter, verifier, log)
            await store.write_state(lock, manifest, config_path)
    finally:
        if transport is not None:
            await transport.close()

    for scanned in report.partial:
        log.warning(f"{os.path.basename(scanned.path)} 部分匹配，需要手动确认")
    log.info(
        f"扫描完成: {len(report.exact)} 个完全匹配, "
        f"{len(report.partial)} 个部分匹配, {len(report.unmatched)} 个未匹配"
    )
    return report


async def _adopt(
    report: ScanReport,
    manifest: Manifest,
    lock: List[InstalledArtifact],
    adapter: RepositoryAdapter,
    verifier: FileVerifier,
    log: LogSink,
) -> None:
    """把完全匹配的文件加入清单和锁文件"""
    declared = {m.key for m in manifest.mods}
    for scanned in report.exact:
        item = DeclaredItem(Platform.CURSEFORGE, str(scanned.match.project_id))
        if item.key in declared:
            continue

        item.name = await adapter.get_name(item.id)
        manifest.mods.append(item)
        declared.add(item.key)
        lock.append(
            InstalledArtifact(
                name=item.name,
                platform=item.platform,
                id=item.id,
                file_name=os.path.basename(scanned.path),
                released_on=scanned.match.file.release_date,
                hash=await verifier.calc_sha1(scanned.path),
                download_url=scanned.match.file.download_url,
            )
        )
        report.adopted.append(item)
        log.success(f"{item.name} 已加入清单")
