"""
CLI 模块

命令行接口实现。
"""

import asyncio
import os

import click
from loguru import logger

from modkeeper import __version__
from modkeeper.exceptions import ModKeeperError
from modkeeper.logger import setup_logger
from modkeeper.orchestrator import ReconcileReport, install, update
from modkeeper.scanner import scan


def _run(coro):
    try:
        return asyncio.run(coro)
    except ModKeeperError as e:
        logger.error(f"错误: {e}")
        raise click.ClickException(str(e))
    except Exception as e:
        logger.exception(f"运行时错误: {e}")
        raise click.ClickException(f"运行时错误: {e}")


def _finish(report: ReconcileReport):
    for failure in report.failures:
        click.echo(failure.message, err=True)
    if not report.ok:
        raise SystemExit(1)


@click.group()
@click.option(
    "-c",
    "--config",
    type=click.Path(dir_okay=False),
    default="modlist.json",
    show_default=True,
    help="模组清单路径",
)
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, config: str, debug: bool):
    """ModKeeper - Minecraft 模组清单管理工具"""
    setup_logger(level="DEBUG" if debug else None)
    ctx.obj = os.path.abspath(config)


@main.command("install")
@click.pass_obj
def install_command(config_path: str):
    """安装清单中缺失的模组，修复丢失或被修改的文件"""
    _finish(_run(install(config_path)))


@main.command("update")
@click.pass_obj
def update_command(config_path: str):
    """检查并下载已安装模组的更新"""
    _finish(_run(update(config_path)))


@main.command("scan")
@click.option("--adopt", is_flag=True, help="把完全匹配的文件加入清单")
@click.pass_obj
def scan_command(config_path: str, adopt: bool):
    """查找模组目录中可以由 CurseForge 管理的文件"""
    report = _run(scan(config_path, adopt=adopt))
    for scanned in report.exact:
        click.echo(f"[匹配] {os.path.basename(scanned.path)} -> {scanned.match.project_id}")
    for scanned in report.partial:
        click.echo(f"[部分] {os.path.basename(scanned.path)} -> {scanned.match.project_id}")
    for scanned in report.unmatched:
        click.echo(f"[未知] {os.path.basename(scanned.path)}")


if __name__ == "__main__":
    main()
