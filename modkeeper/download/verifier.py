"""
文件校验器

实现 SHA1 校验、CurseForge 指纹计算和文件存在性检查。
"""

import hashlib
import os

import aiofiles

from modkeeper.exceptions import FileUnreadable

CHUNK_SIZE = 65536

# CurseForge 计算指纹前会剔除的空白字节: \t \n \r 空格
FINGERPRINT_SKIP = frozenset((9, 10, 13, 32))

_M = 0x5BD1E995
_MASK = 0xFFFFFFFF


def murmur2(data: bytes, seed: int = 1) -> int:
    """32 位 MurmurHash2"""
    length = len(data)
    h = (seed ^ length) & _MASK

    end = length - (length % 4)
    for i in range(0, end, 4):
        k = int.from_bytes(data[i : i + 4], "little")
        k = (k * _M) & _MASK
        k ^= k >> 24
        k = (k * _M) & _MASK
        h = (h * _M) & _MASK
        h ^= k

    tail = length % 4
    if tail == 3:
        h ^= data[end + 2] << 16
    if tail >= 2:
        h ^= data[end + 1] << 8
    if tail >= 1:
        h ^= data[end]
        h = (h * _M) & _MASK

    h ^= h >> 13
    h = (h * _M) & _MASK
    h ^= h >> 15
    return h


class FileVerifier:
    """文件校验器"""

    @staticmethod
    async def _read(file_path: str):
        """按块读取文件，不存在或无法打开时抛出 FileUnreadable"""
        if not os.path.isfile(file_path):
            raise FileUnreadable(file_path, "文件不存在")
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while True:
                    data = await f.read(CHUNK_SIZE)
                    if not data:
                        break
                    yield data
        except OSError as e:
            raise FileUnreadable(file_path, str(e)) from e

    @staticmethod
    async def calc_sha1(file_path: str) -> str:
        """
        计算文件的 SHA1 值

        只取决于文件内容，与修改时间、权限等元数据无关。空文件也会正常返回。

        Raises:
            FileUnreadable: 文件不存在或无法读取
        """
        sha1 = hashlib.sha1()
        async for chunk in FileVerifier._read(file_path):
            sha1.update(chunk)
        return sha1.hexdigest()

    @staticmethod
    async def fingerprint(file_path: str) -> int:
        """
        计算 CurseForge 文件指纹

        Raises:
            FileUnreadable: 文件不存在或无法读取
        """
        content = bytearray()
        async for chunk in FileVerifier._read(file_path):
            content.extend(b for b in chunk if b not in FINGERPRINT_SKIP)
        return murmur2(bytes(content))

    @staticmethod
    def exists(file_path: str) -> bool:
        """检查文件是否存在"""
        return os.path.exists(file_path)
