from __future__ import annotations

from typing import Any

import pytest
from aiolimiter import AsyncLimiter

from modkeeper.api import get_adapter
from modkeeper.api.modrinth import ModrinthAPI
from modkeeper.exceptions import ItemNotFound, NoMatchFound, UnsupportedOperation
from modkeeper.models import Platform, ReleaseType, ResolutionConstraints, RuntimeSettings
from modkeeper.services.transport import RateLimitedTransport, RetryConfig
from tests.helpers.fakes import FakeResponse, FakeSession

CONSTRAINTS = ResolutionConstraints(
    allowed_release_types=frozenset({ReleaseType.RELEASE}),
    game_version="1.20.1",
    loader="fabric",
)


def make_api(responses: list[FakeResponse]) -> tuple[ModrinthAPI, FakeSession]:
    session = FakeSession(responses)
    transport = RateLimitedTransport(
        AsyncLimiter(1000, 1),
        RetryConfig.no_retries(),
        session=session,  # type: ignore[arg-type]
    )
    return ModrinthAPI(transport), session


def version(
    number: str,
    date: str,
    *,
    version_type: str = "release",
    loaders: list[str] | None = None,
    files: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "version_number": number,
        "version_type": version_type,
        "date_published": date,
        "loaders": loaders or ["fabric"],
        "game_versions": ["1.20.1"],
        "files": files
        if files is not None
        else [
            {
                "filename": f"sodium-{number}.jar",
                "url": f"https://cdn.modrinth.com/sodium-{number}.jar",
                "primary": True,
                "hashes": {"sha1": f"sha1-{number}", "sha512": "x"},
            }
        ],
    }


async def test_resolve_selects_latest_allowed_version() -> None:
    versions = [
        version("0.5.0", "2024-01-01T00:00:00Z"),
        version("0.6.0-beta", "2024-03-01T00:00:00Z", version_type="beta"),
        version("0.5.1", "2024-02-01T00:00:00Z"),
        version("0.5.2", "2024-04-01T00:00:00Z", loaders=["quilt"]),
    ]
    api, session = make_api(
        [FakeResponse(200, versions), FakeResponse(200, {"title": "Sodium"})]
    )

    remote = await api.resolve("AANobbMI", CONSTRAINTS)

    assert remote.name == "Sodium"
    assert remote.file_name == "sodium-0.5.1.jar"
    assert remote.hash == "sha1-0.5.1"
    assert remote.download_url == "https://cdn.modrinth.com/sodium-0.5.1.jar"
    assert [c["url"] for c in session.calls] == [
        "https://api.modrinth.com/v2/project/AANobbMI/version",
        "https://api.modrinth.com/v2/project/AANobbMI",
    ]


async def test_primary_file_is_preferred() -> None:
    files = [
        {"filename": "sources.jar", "url": "https://cdn/sources.jar", "hashes": {"sha1": "a"}},
        {
            "filename": "main.jar",
            "url": "https://cdn/main.jar",
            "primary": True,
            "hashes": {"sha1": "b"},
        },
    ]
    api, _ = make_api([FakeResponse(200, [version("1.0", "2024-01-01T00:00:00Z", files=files)])])

    [candidate] = await api.get_candidates("mod")

    assert candidate.file_name == "main.jar"
    assert candidate.hash == "b"


async def test_first_file_is_used_without_primary() -> None:
    files = [
        {"filename": "first.jar", "url": "https://cdn/first.jar", "hashes": {"sha1": "a"}},
        {"filename": "second.jar", "url": "https://cdn/second.jar", "hashes": {"sha1": "b"}},
    ]
    api, _ = make_api([FakeResponse(200, [version("1.0", "2024-01-01T00:00:00Z", files=files)])])

    [candidate] = await api.get_candidates("mod")

    assert candidate.file_name == "first.jar"


async def test_versions_without_files_are_skipped() -> None:
    api, _ = make_api([FakeResponse(200, [version("1.0", "2024-01-01T00:00:00Z", files=[])])])

    assert await api.get_candidates("mod") == []


async def test_unknown_project_raises_item_not_found() -> None:
    api, _ = make_api([FakeResponse(404)])

    with pytest.raises(ItemNotFound) as excinfo:
        await api.resolve("missing", CONSTRAINTS)

    assert excinfo.value.context["platform"] == "modrinth"


async def test_no_compatible_version_raises_no_match_found() -> None:
    api, _ = make_api(
        [FakeResponse(200, [version("1.0", "2024-01-01T00:00:00Z", loaders=["forge"])])]
    )

    with pytest.raises(NoMatchFound):
        await api.resolve("mod", CONSTRAINTS)


async def test_fingerprint_matching_is_not_supported() -> None:
    api, _ = make_api([])

    with pytest.raises(UnsupportedOperation):
        await api.find_fingerprint_matches([1, 2])


def test_registry_passes_authorization_header() -> None:
    transport = RateLimitedTransport(AsyncLimiter(1, 1))
    settings = RuntimeSettings(modrinth_api_key="mr-token")

    adapter = get_adapter(Platform.MODRINTH, transport, settings)

    assert isinstance(adapter, ModrinthAPI)
    assert adapter.headers["Authorization"] == "mr-token"
