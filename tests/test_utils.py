import pytest

from mediaconv_cli.utils.formatting import format_clock, format_duration, format_size, shorten
from mediaconv_cli.utils.url import default_filename, filename_from_link, is_supported_video_url


@pytest.mark.parametrize(
    ("candidate", "expected"),
    [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", True),
        ("https://youtu.be/dQw4w9WgXcQ", True),
        ("youtube.com/shorts/abc", True),
        ("https://m.youtube.com/watch?v=abc", True),
        ("https://example.com/video.mp4", False),
        ("https://notyoutube.com/watch", False),
        ("", False),
    ],
)
def test_is_supported_video_url(candidate: str, expected: bool) -> None:
    assert is_supported_video_url(candidate) is expected


@pytest.mark.parametrize(
    ("link", "expected"),
    [
        ("http://backend.test/files/a.mp3", "a.mp3"),
        ("http://backend.test/files/My%20Song.mp3?token=1", "My Song.mp3"),
        ("http://backend.test/", "audio.mp3"),
    ],
)
def test_filename_from_link(link: str, expected: str) -> None:
    assert filename_from_link(link) == expected


def test_default_filename() -> None:
    assert default_filename("mp4") == "video.mp4"
    assert default_filename("mp3") == "audio.mp3"


def test_formatting_helpers() -> None:
    assert format_size(0) == "0 B"
    assert format_size(1536) == "1.5 KB"
    assert format_duration(3725) == "1h 2m 5s"
    assert format_clock(187) == "3:07"
    assert format_clock(3765) == "1:02:45"
    assert shorten("abcdef", 4) == "abc…"
    assert shorten("abc", 4) == "abc"
