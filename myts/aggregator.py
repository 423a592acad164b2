import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

from .config import Settings
from .instances import Instance

VIDEO_GUID_PREFIX = "yt:video:"


@dataclass(frozen=True)
class VideoEntry:
    id: str
    title: str
    published_at: datetime
    channel_id: str
    channel_name: str


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp, assuming UTC when no offset is given."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class FeedAggregator:
    """Fetch the latest videos of every subscribed channel and merge them."""

    def __init__(
        self,
        settings: Settings,
        instance: Instance,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.instance = instance
        self.session = session or requests.Session()
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    def fetch_channel_items(self, channel_id: str) -> List[Dict[str, Any]]:
        """Return the raw feed items of one channel, or [] on any failure."""
        try:
            response = self.session.get(
                self.settings.translation_endpoint,
                params={"url": self.instance.feed_url(channel_id)},
                headers={"User-Agent": self.settings.user_agent},
                timeout=self.settings.fetch_timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.debug(f"Failed to fetch feed for {channel_id}: {e}")
            return []

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            self.logger.debug(f"No items in feed for {channel_id}")
            return []
        return items

    def to_video_entry(
        self, item: Dict[str, Any], channel_id: str
    ) -> Optional[VideoEntry]:
        """Convert a feed item to a VideoEntry tagged with its channel."""
        if not isinstance(item, dict):
            return None

        guid = item.get("guid")
        published_at = parse_timestamp(item.get("date_published"))
        if not guid or published_at is None:
            self.logger.debug(f"Skipping incomplete feed item from {channel_id}")
            return None

        author = item.get("author")
        channel_name = author.get("name") if isinstance(author, dict) else None

        return VideoEntry(
            id=str(guid).replace(VIDEO_GUID_PREFIX, ""),
            title=str(item.get("title") or ""),
            published_at=published_at,
            channel_id=channel_id,
            channel_name=str(channel_name or ""),
        )

    def get_channel_videos(self, channel_id: str) -> List[VideoEntry]:
        """Latest videos of one channel, capped, in feed order."""
        videos = []
        for item in self.fetch_channel_items(channel_id)[
            : self.settings.videos_per_channel
        ]:
            video = self.to_video_entry(item, channel_id)
            if video is not None:
                videos.append(video)

        self.logger.debug(f"Found {len(videos)} videos for channel {channel_id}")
        return videos

    def aggregate(self, channel_ids: Iterable[str]) -> List[VideoEntry]:
        """Fetch all channels one after another and return the newest videos."""
        all_videos: List[VideoEntry] = []
        processed = 0

        for channel_id in channel_ids:
            # Cool down the requests once, half way through a large list
            if processed == self.settings.channel_amount_limit:
                self.logger.debug(
                    f"Processed {processed} channels, cooling down for {self.settings.cooldown_seconds}s"
                )
                self.sleep(self.settings.cooldown_seconds)

            all_videos.extend(self.get_channel_videos(channel_id))
            processed += 1

        # sorted() is stable, equal timestamps keep their arrival order
        all_videos = sorted(all_videos, key=lambda v: v.published_at, reverse=True)
        latest = all_videos[: self.settings.video_amount_limit]

        self.logger.info(
            f"Collected {len(latest)} of {len(all_videos)} videos from {processed} channels"
        )
        return latest
