"""
限速重试 HTTP 传输层

所有仓库请求都经过此层：每次尝试前先通过令牌桶限速器，
服务器错误 (5xx) 按固定间隔重试，连接错误直接抛出。
"""

import asyncio
from dataclasses import dataclass
from typing import Mapping, Optional

import aiohttp
from aiolimiter import AsyncLimiter
from loguru import logger

from modkeeper.exceptions import RateLimitExceeded, TransportError


@dataclass(frozen=True)
class RetryConfig:
    """重试配置"""

    max_retries: int = 3
    retry_interval: float = 1.0

    @classmethod
    def no_retries(cls) -> "RetryConfig":
        """不重试（用于不接受过期数据的请求）"""
        return cls(max_retries=0, retry_interval=0.0)


class RateLimitedTransport:
    """
    带限速与重试的 HTTP 传输

    限速器在整个进程内共享，是所有并发任务唯一的竞争点。
    """

    def __init__(
        self,
        limiter: AsyncLimiter,
        retry: Optional[RetryConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        acquire_timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self.limiter = limiter
        self.retry = retry or RetryConfig()
        self.acquire_timeout = acquire_timeout
        self._headers = dict(headers) if headers else None
        self._session = session
        self._owned_session = session is None
        self._cancelled = asyncio.Event()

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._headers)
        return self._session

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        """取消限速上下文，所有正在等待和后续的请求都会失败"""
        self._cancelled.set()

    async def _acquire(self, url: str):
        """等待限速器放行"""
        if self._cancelled.is_set():
            raise RateLimitExceeded("限速上下文已取消", context={"url": url})

        acquire = asyncio.ensure_future(self.limiter.acquire())
        cancelled = asyncio.ensure_future(self._cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {acquire, cancelled},
                timeout=self.acquire_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancelled.cancel()

        if acquire not in done or self._cancelled.is_set():
            acquire.cancel()
            reason = "限速上下文已取消" if self._cancelled.is_set() else "等待限速器超时"
            raise RateLimitExceeded(reason, context={"url": url})

        try:
            acquire.result()
        except ValueError as e:
            # 限速器容量小于单次请求所需令牌，永远无法放行
            raise RateLimitExceeded(f"限速器配置无效: {e}", context={"url": url})

    async def send(self, method: str, url: str, **kwargs) -> aiohttp.ClientResponse:
        """
        发送请求

        Args:
            method: HTTP 方法
            url: 请求地址
            **kwargs: 透传给 aiohttp 的参数 (params, json, headers ...)

        Returns:
            已读取响应体的 ClientResponse。重试耗尽时最后一次 5xx 响应原样返回。

        Raises:
            RateLimitExceeded: 限速器无法放行
            TransportError: 连接失败或超时
        """
        response = None
        for attempt in range(self.retry.max_retries + 1):
            await self._acquire(url)
            logger.debug(f"[HTTP] {method} {url} (第 {attempt + 1} 次尝试)")

            try:
                response = await self.session.request(method, url, **kwargs)
                try:
                    await response.read()
                finally:
                    response.release()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(
                    f"请求失败: {method} {url}: {e}", context={"url": url}
                ) from e

            logger.debug(f"[HTTP] {method} {url} -> {response.status}")

            if 500 <= response.status < 600 and attempt < self.retry.max_retries:
                logger.warning(
                    f"[重试] {url} 返回 {response.status}，"
                    f"{self.retry.retry_interval:.1f}s 后重试..."
                )
                await asyncio.sleep(self.retry.retry_interval)
                continue
            break

        return response

    async def get(self, url: str, **kwargs) -> aiohttp.ClientResponse:
        return await self.send("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> aiohttp.ClientResponse:
        return await self.send("POST", url, **kwargs)

    async def close(self):
        """关闭传输层"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
