"""
ModKeeper 下载层

包含文件下载与内容校验。
"""

from modkeeper.download.manager import DownloadManager
from modkeeper.download.verifier import FileVerifier

__all__ = [
    "DownloadManager",
    "FileVerifier",
]
