"""Tests for page rendering and relative dates."""

from datetime import datetime, timedelta, timezone

import pytest

from myts.aggregator import VideoEntry
from myts.instances import DIRECT_INSTANCE, Instance
from myts.renderer import PageRenderer, relative_date

from conftest import CHANNEL_A, CHANNEL_B


def ago(now, **kwargs):
    return now - timedelta(**kwargs)


@pytest.fixture
def videos(now):
    return [
        VideoEntry("vid1", "First video", ago(now, hours=3), CHANNEL_A, "Channel A"),
        VideoEntry("vid2", "Second video", ago(now, days=65), CHANNEL_B, "Channel B"),
    ]


class TestRelativeDate:
    """Test relative age formatting and its boundaries."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0 seconds ago"),
            (59, "59 seconds ago"),
            (60, "1 minutes ago"),
            (3599, "59 minutes ago"),
            (3600, "1 hours ago"),
            (86399, "23 hours ago"),
            (86400, "1 days ago"),
            (30 * 86400 - 1, "29 days ago"),
            (30 * 86400, "1 months ago"),
            (365 * 86400 - 1, "12 months ago"),
            (365 * 86400, "1 years ago"),
            (3 * 365 * 86400, "3 years ago"),
        ],
    )
    def test_boundaries(self, now, seconds, expected):
        assert relative_date(ago(now, seconds=seconds), now) == expected

    def test_future_is_clamped(self, now):
        assert relative_date(now + timedelta(minutes=5), now) == "0 seconds ago"

    def test_ignores_sub_second_part(self, now):
        assert relative_date(ago(now, seconds=59, microseconds=900000), now) == "59 seconds ago"


class TestPageRenderer:
    """Test HTML output."""

    def test_header_names_instance(self, now):
        html = PageRenderer(DIRECT_INSTANCE).render([], now).decode("utf-8")
        assert "<h1>Latest videos</h1>" in html
        assert "Using youtube.com" in html
        assert "<article>" not in html

    def test_video_blocks(self, videos, now):
        html = PageRenderer(DIRECT_INSTANCE).render(videos, now).decode("utf-8")
        assert html.count("<article>") == 2
        assert 'href="https://youtube.com/watch?v=vid1"' in html
        assert 'src="https://i.ytimg.com/vi/vid1/mqdefault.jpg"' in html
        assert f'href="https://youtube.com/channel/{CHANNEL_A}"' in html
        assert ">Channel A</a>" in html
        assert "<small>3 hours ago</small>" in html
        assert "<small>2 months ago</small>" in html
        assert html.index("vid1") < html.index("vid2")

    def test_mirror_thumbnails(self, videos, now):
        mirror = Instance("https://yewtu.be", mirror=True)
        html = PageRenderer(mirror).render(videos, now).decode("utf-8")
        assert "Using yewtu.be" in html
        assert 'src="https://yewtu.be/vi/vid1/mqdefault.jpg"' in html
        assert 'href="https://yewtu.be/watch?v=vid1"' in html

    def test_deterministic(self, videos, now):
        renderer = PageRenderer(DIRECT_INSTANCE)
        assert renderer.render(videos, now) == renderer.render(videos, now)
        assert PageRenderer(DIRECT_INSTANCE).render(videos, now) == renderer.render(videos, now)

    def test_returns_utf8_bytes(self, now):
        video = VideoEntry("v", "Ünïcödé 🎬", ago(now, hours=1), CHANNEL_A, "Käse")
        page = PageRenderer(DIRECT_INSTANCE).render([video], now)
        assert isinstance(page, bytes)
        assert "Ünïcödé 🎬".encode("utf-8") in page

    def test_user_text_is_escaped(self, now):
        title = '"><script>alert(1)</script> @1 @2 {{ instance }}'
        video = VideoEntry("vid", title, ago(now, hours=1), CHANNEL_A, "<b>Evil & Co</b>")
        html = PageRenderer(DIRECT_INSTANCE).render([video], now).decode("utf-8")

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&lt;b&gt;Evil &amp; Co&lt;/b&gt;" in html
        # Template syntax in user text is not evaluated
        assert "{{ instance }}" in html
        assert 'href="https://youtube.com/watch?v=vid"' in html
        assert html.count("<article>") == 1

    def test_defaults_to_current_time(self):
        video = VideoEntry(
            "vid", "Now", datetime.now(timezone.utc) - timedelta(seconds=5), CHANNEL_A, "A"
        )
        html = PageRenderer(DIRECT_INSTANCE).render([video]).decode("utf-8")
        assert "seconds ago" in html
