"""
下载器

远程文件先写入同目录下的 .part 文件，完整写完后再替换到目标路径，
目标路径上不会出现写了一半的文件。
"""

import asyncio
import os
import shutil
from typing import Optional

import aiofiles
import aiohttp
from loguru import logger

from modkeeper.exceptions import DownloadError, DownloadFileError, DownloadNetworkError
from modkeeper.services.transport import RetryConfig

CHUNK_SIZE = 65536


def _discard(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


class DownloadManager:
    """
    模组文件下载器

    非 2xx 状态码直接失败；连接失败或超时按指数退避重试。
    """

    def __init__(
        self,
        retry: Optional[RetryConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.retry = retry or RetryConfig()
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def download(self, url: str, destination: str) -> None:
        """
        下载到 destination，父目录不存在时自动创建

        Args:
            url: 下载地址，file:// 地址直接复制
            destination: 目标文件路径

        Raises:
            DownloadNetworkError: 服务器返回非 2xx
            DownloadError: 连接失败且重试耗尽
            DownloadFileError: 无法写入目标文件
        """
        os.makedirs(os.path.dirname(destination) or ".", exist_ok=True)
        if url.startswith("file://"):
            self._copy(url[len("file://") :], destination)
        else:
            await self._fetch(url, destination)

    async def _fetch(self, url: str, destination: str) -> None:
        name = os.path.basename(destination)
        part = f"{destination}.part"
        attempt = 0
        logger.info(f"下载 {name}")

        while True:
            try:
                await self._stream(url, part)
                os.replace(part, destination)
                logger.success(f"{name} 下载完成")
                return
            except DownloadNetworkError:
                _discard(part)
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                _discard(part)
                if attempt >= self.retry.max_retries:
                    raise DownloadError(
                        f"下载失败: {name}", context={"url": url, "error": str(e)}
                    ) from e
                delay = self.retry.retry_interval * 2**attempt
                attempt += 1
                logger.warning(f"{name} 下载中断 ({e})，{delay:.1f}s 后第 {attempt} 次重试")
                await asyncio.sleep(delay)
            except OSError as e:
                _discard(part)
                raise DownloadFileError(
                    f"无法写入 {destination}", context={"error": str(e)}
                ) from e

    async def _stream(self, url: str, part: str) -> None:
        async with self.session.get(url) as response:
            if not 200 <= response.status < 300:
                raise DownloadNetworkError(
                    f"HTTP {response.status}: {url}",
                    context={"url": url, "status": response.status},
                )
            async with aiofiles.open(part, "wb") as f:
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    await f.write(chunk)

    @staticmethod
    def _copy(source: str, destination: str) -> None:
        logger.info(f"复制本地文件 {source}")
        try:
            shutil.copyfile(source, destination)
        except OSError as e:
            raise DownloadFileError(
                f"无法复制 {source}", context={"error": str(e)}
            ) from e

    async def close(self):
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()
