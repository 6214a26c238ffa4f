import asyncio
from pathlib import Path

import pytest
from aiohttp import test_utils, web

from mediaconv_cli.exceptions import SaveError
from mediaconv_cli.media.saver import FileSaver, close_connection_pool
from mediaconv_cli.models.stats import SessionStats

PAYLOAD = b"ID3" + bytes(range(256)) * 1024


async def _file(request: web.Request) -> web.Response:
    return web.Response(body=PAYLOAD, content_type="audio/mpeg")


def _run_with_files(check) -> None:
    async def scenario() -> None:
        app = web.Application()
        app.router.add_get("/files/{name}", _file)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            await check(str(server.make_url("/files/")))
        finally:
            await close_connection_pool()
            await server.close()

    asyncio.run(scenario())


def test_save_writes_file_named_after_link(tmp_path: Path) -> None:
    stats = SessionStats()
    saved = []

    async def check(files_url: str) -> None:
        saver = FileSaver(tmp_path / "out", stats=stats)
        saved.append(await saver.save(files_url + "a.mp3"))
        saved.append(await saver.save(files_url + "a.mp3"))

    _run_with_files(check)

    assert [path.name for path in saved] == ["a.mp3", "a (1).mp3"]
    assert saved[0].read_bytes() == PAYLOAD
    assert not list((tmp_path / "out").glob("*.part"))
    assert stats.files_saved == 2
    assert stats.bytes_saved == 2 * len(PAYLOAD)


def test_save_failure_raises_save_error(tmp_path: Path) -> None:
    async def check(files_url: str) -> None:
        saver = FileSaver(tmp_path)
        with pytest.raises(SaveError):
            await saver.save(files_url.replace("/files/", "/missing/") + "a.mp3")

    _run_with_files(check)

    assert list(tmp_path.iterdir()) == []


async def _tagged_file(request: web.Request) -> web.StreamResponse:
    fill = request.query["v"].upper().encode()
    response = web.StreamResponse(headers={"Content-Type": "audio/mpeg"})
    await response.prepare(request)
    for _ in range(8):
        await response.write(fill * 50_000)
        await asyncio.sleep(0)
    await response.write_eof()
    return response


def test_concurrent_saves_of_same_name_get_separate_files(tmp_path: Path) -> None:
    saved = []

    async def scenario() -> None:
        app = web.Application()
        app.router.add_get("/files/{name}", _tagged_file)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            saver = FileSaver(tmp_path)
            files_url = str(server.make_url("/files/a.mp3"))
            saved.extend(
                await asyncio.gather(
                    saver.save(files_url + "?v=a"), saver.save(files_url + "?v=b")
                )
            )
        finally:
            await close_connection_pool()
            await server.close()

    asyncio.run(scenario())

    assert sorted(path.name for path in saved) == ["a (1).mp3", "a.mp3"]
    contents = {path.read_bytes() for path in saved}
    assert contents == {b"A" * 400_000, b"B" * 400_000}
    assert not list(tmp_path.glob("*.part"))
