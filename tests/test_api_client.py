import asyncio
from typing import Awaitable, Callable, List, Optional, Tuple

import pytest
from aiohttp import test_utils, web

from mediaconv_cli.api.client import ConverterAPIClient
from mediaconv_cli.exceptions import PreviewError, TransferError


async def _download_ok(request: web.Request) -> web.Response:
    form = await request.post()
    return web.json_response(
        {
            "download_url": f"/files/{form['quality']}.mp3",
            "thumbnail_url": "/thumbs/a.jpg",
            "message": f"converted {form['video_url']}",
            "debug_info": "x" * 100_000,
        }
    )


async def _download_rejected(request: web.Request) -> web.Response:
    await request.post()
    return web.json_response({"detail": "Video too long"}, status=400)


async def _download_broken(request: web.Request) -> web.Response:
    return web.Response(text="Internal Server Error", status=500)


async def _download_slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.json_response({"download_url": "/files/late.mp3"})


async def _prepare_ok(request: web.Request) -> web.Response:
    form = await request.post()
    return web.json_response(
        {"title": f"Title of {form['video_url']}", "duration": 212, "thumbnail": "t.jpg"}
    )


async def _prepare_rejected(request: web.Request) -> web.Response:
    return web.json_response({"detail": "Unsupported URL"}, status=422)


def _run_with_backend(
    routes: List[Tuple[str, Callable]],
    check: Callable[[ConverterAPIClient], Awaitable[None]],
    request_timeout: float = 5,
) -> None:
    async def scenario() -> None:
        app = web.Application()
        for path, handler in routes:
            app.router.add_post(path, handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        client = ConverterAPIClient(
            str(server.make_url("/")), request_timeout=request_timeout
        )
        try:
            await check(client)
        finally:
            await client.close()
            await server.close()

    asyncio.run(scenario())


def test_request_conversion_reports_streamed_progress() -> None:
    samples: List[Tuple[int, Optional[int]]] = []

    async def check(client: ConverterAPIClient) -> None:
        response = await client.request_conversion(
            "https://youtu.be/abc",
            "medium",
            on_progress=lambda loaded, total: samples.append((loaded, total)),
        )
        assert response.download_url == "/files/medium.mp3"
        assert response.message == "converted https://youtu.be/abc"

    _run_with_backend([("/download", _download_ok)], check)

    assert len(samples) > 1
    loaded_values = [loaded for loaded, _ in samples]
    assert loaded_values == sorted(loaded_values)
    assert samples[-1][0] == samples[-1][1]


def test_backend_detail_is_exposed_on_failure() -> None:
    async def check(client: ConverterAPIClient) -> None:
        with pytest.raises(TransferError) as excinfo:
            await client.request_conversion("https://youtu.be/abc", "best")
        assert excinfo.value.detail == "Video too long"
        assert excinfo.value.status == 400
        assert not excinfo.value.timed_out

    _run_with_backend([("/download", _download_rejected)], check)


def test_failure_without_detail() -> None:
    async def check(client: ConverterAPIClient) -> None:
        with pytest.raises(TransferError) as excinfo:
            await client.request_conversion("https://youtu.be/abc", "best")
        assert excinfo.value.detail is None
        assert excinfo.value.status == 500

    _run_with_backend([("/download", _download_broken)], check)


def test_stalled_backend_times_out() -> None:
    async def check(client: ConverterAPIClient) -> None:
        with pytest.raises(TransferError) as excinfo:
            await client.request_conversion("https://youtu.be/abc", "best")
        assert excinfo.value.timed_out

    _run_with_backend([("/download", _download_slow)], check, request_timeout=0.2)


def test_unreachable_backend_raises_transfer_error() -> None:
    async def scenario() -> None:
        client = ConverterAPIClient("http://127.0.0.1:9", request_timeout=2)
        try:
            with pytest.raises(TransferError):
                await client.request_conversion("https://youtu.be/abc", "best")
        finally:
            await client.close()

    asyncio.run(scenario())


def test_fetch_video_info() -> None:
    async def check(client: ConverterAPIClient) -> None:
        info = await client.fetch_video_info("https://youtu.be/abc")
        assert info.title == "Title of https://youtu.be/abc"
        assert info.duration == 212
        assert info.thumbnail == "t.jpg"

    _run_with_backend([("/prepare", _prepare_ok)], check)


def test_fetch_video_info_failure_becomes_preview_error() -> None:
    async def check(client: ConverterAPIClient) -> None:
        with pytest.raises(PreviewError):
            await client.fetch_video_info("https://youtu.be/abc")

    _run_with_backend([("/prepare", _prepare_rejected)], check)


@pytest.mark.parametrize(
    ("download_url", "expected"),
    [
        ("/files/a.mp3", "http://backend.test/files/a.mp3"),
        ("https://cdn.test/a.mp3", "https://cdn.test/a.mp3"),
    ],
)
def test_build_download_link(download_url: str, expected: str) -> None:
    client = ConverterAPIClient("http://backend.test/")
    assert client.build_download_link(download_url) == expected
