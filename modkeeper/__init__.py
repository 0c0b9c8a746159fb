"""
ModKeeper - Minecraft 模组清单管理工具

按清单从 CurseForge / Modrinth 安装和更新模组，并用锁文件记录已安装的文件。
"""

from modkeeper.logger import setup_logger

__version__ = "0.1.0"

__all__ = ["__version__", "setup_logger"]
