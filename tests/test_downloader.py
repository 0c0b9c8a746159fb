from __future__ import annotations

from pathlib import Path

import pytest
from aiohttp import web
from aiohttp import test_utils

from modkeeper.download import DownloadManager
from modkeeper.exceptions import DownloadFileError, DownloadNetworkError
from modkeeper.services.transport import RetryConfig

JAR = b"PK\x03\x04 fake jar" * 1000


@pytest.fixture
async def server():
    hits: dict[str, int] = {}

    async def jar(request: web.Request) -> web.Response:
        hits[request.path] = hits.get(request.path, 0) + 1
        return web.Response(body=JAR)

    async def missing(request: web.Request) -> web.Response:
        hits[request.path] = hits.get(request.path, 0) + 1
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/mod.jar", jar)
    app.router.add_get("/missing.jar", missing)
    async with test_utils.TestServer(app) as srv:
        srv.hits = hits
        yield srv


async def test_download_writes_destination(server, tmp_path: Path) -> None:
    destination = tmp_path / "mods" / "mod.jar"

    async with DownloadManager(RetryConfig.no_retries()) as downloader:
        await downloader.download(str(server.make_url("/mod.jar")), str(destination))

    assert destination.read_bytes() == JAR
    assert not (tmp_path / "mods" / "mod.jar.part").exists()


async def test_http_error_is_not_retried(server, tmp_path: Path) -> None:
    destination = tmp_path / "missing.jar"

    async with DownloadManager(RetryConfig(max_retries=3, retry_interval=0)) as downloader:
        with pytest.raises(DownloadNetworkError) as excinfo:
            await downloader.download(
                str(server.make_url("/missing.jar")), str(destination)
            )

    assert excinfo.value.context["status"] == 404
    assert server.hits["/missing.jar"] == 1
    assert not destination.exists()
    assert not (tmp_path / "missing.jar.part").exists()


async def test_file_urls_are_copied(tmp_path: Path) -> None:
    source = tmp_path / "local.jar"
    source.write_bytes(b"local")
    destination = tmp_path / "mods" / "local.jar"

    async with DownloadManager() as downloader:
        await downloader.download(f"file://{source}", str(destination))

    assert destination.read_bytes() == b"local"


async def test_missing_local_source_raises(tmp_path: Path) -> None:
    async with DownloadManager() as downloader:
        with pytest.raises(DownloadFileError):
            await downloader.download(
                f"file://{tmp_path / 'nope.jar'}", str(tmp_path / "out.jar")
            )
