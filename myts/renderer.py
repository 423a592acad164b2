from datetime import datetime, timezone
from typing import Iterable, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from .aggregator import VideoEntry
from .instances import Instance

SEC_PER_MINUTE = 60
SEC_PER_HOUR = 60 * 60
SEC_PER_DAY = 60 * 60 * 24
SEC_PER_MONTH = 60 * 60 * 24 * 30
SEC_PER_YEAR = 60 * 60 * 24 * 365


def relative_date(published_at: datetime, now: datetime) -> str:
    """Format the age of a timestamp, e.g. "3 hours ago"."""
    delta_s = max(0, int((now - published_at).total_seconds()))

    if delta_s < SEC_PER_MINUTE:
        return f"{delta_s} seconds ago"
    elif delta_s < SEC_PER_HOUR:
        return f"{delta_s // SEC_PER_MINUTE} minutes ago"
    elif delta_s < SEC_PER_DAY:
        return f"{delta_s // SEC_PER_HOUR} hours ago"
    elif delta_s < SEC_PER_MONTH:
        return f"{delta_s // SEC_PER_DAY} days ago"
    elif delta_s < SEC_PER_YEAR:
        return f"{delta_s // SEC_PER_MONTH} months ago"
    else:
        return f"{delta_s // SEC_PER_YEAR} years ago"


class PageRenderer:
    """Render the overview page of the latest videos.

    The template is compiled once here; ``render`` touches neither disk nor
    network and always escapes titles and channel names.
    """

    def __init__(self, instance: Instance):
        self.instance = instance
        self.env = Environment(
            loader=PackageLoader("myts", "templates"),
            autoescape=select_autoescape(["html"]),
        )
        self.template = self.env.get_template("index.html")

    def render(
        self, videos: Iterable[VideoEntry], now: Optional[datetime] = None
    ) -> bytes:
        if now is None:
            now = datetime.now(timezone.utc)

        entries = []
        for video in videos:
            entries.append(
                {
                    "watch_url": self.instance.watch_url(video.id),
                    "thumbnail_url": self.instance.thumbnail_url(video.id),
                    "title": video.title,
                    "age": relative_date(video.published_at, now),
                    "channel_url": self.instance.channel_url(video.channel_id),
                    "channel_name": video.channel_name,
                }
            )

        html = self.template.render(instance=self.instance.display_name, videos=entries)
        return html.encode("utf-8")
