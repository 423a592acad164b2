import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .config import Settings

logger = logging.getLogger(__name__)

YOUTUBE_URL = "https://youtube.com"
YOUTUBE_FEED_URL = "https://www.youtube.com/feeds/videos.xml"
YOUTUBE_THUMBNAIL_URL = "https://i.ytimg.com"


class InstanceUnavailableError(Exception):
    """Raised when a mirror was requested but none could be found."""


@dataclass(frozen=True)
class Instance:
    """The origin that feed, watch and thumbnail URLs are built against."""

    url: str
    mirror: bool = False

    def __post_init__(self):
        object.__setattr__(self, "url", self.url.rstrip("/"))

    @property
    def display_name(self) -> str:
        return self.url.split("://", 1)[-1]

    def feed_url(self, channel_id: str) -> str:
        if self.mirror:
            return f"{self.url}/feed/channel/{channel_id}"
        return f"{YOUTUBE_FEED_URL}?channel_id={channel_id}"

    def thumbnail_url(self, video_id: str) -> str:
        base = self.url if self.mirror else YOUTUBE_THUMBNAIL_URL
        return f"{base}/vi/{video_id}/mqdefault.jpg"

    def watch_url(self, video_id: str) -> str:
        return f"{self.url}/watch?v={video_id}"

    def channel_url(self, channel_id: str) -> str:
        return f"{self.url}/channel/{channel_id}"


DIRECT_INSTANCE = Instance(YOUTUBE_URL)


def find_mirror_instance(
    settings: Settings, session: Optional[requests.Session] = None
) -> Optional[str]:
    """Return the URI of the best public Invidious instance, or None.

    The directory lists ``[name, details]`` pairs already sorted by type,
    health and users. Only ``https`` entries qualify, which drops onion and
    i2p instances.
    """
    session = session or requests.Session()
    try:
        response = session.get(
            settings.instances_url,
            headers={"User-Agent": settings.user_agent},
            timeout=settings.fetch_timeout,
        )
        response.raise_for_status()
        instances = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Could not fetch Invidious instances: {e}")
        return None

    if not isinstance(instances, list):
        logger.warning("Unexpected response from Invidious instance directory")
        return None

    for entry in instances:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            continue
        details = entry[1]
        if not isinstance(details, dict):
            continue
        if details.get("type") == "https" and details.get("uri"):
            logger.debug(f"Selected Invidious instance {details['uri']}")
            return details["uri"]

    logger.warning("No usable Invidious instance found")
    return None


def select_instance(
    settings: Settings, session: Optional[requests.Session] = None
) -> Instance:
    """Choose the instance for this run."""
    if not settings.use_invidious:
        return DIRECT_INSTANCE

    uri = find_mirror_instance(settings, session)
    if uri is None:
        raise InstanceUnavailableError(
            "No Invidious instance available, try again without --invidious"
        )
    return Instance(uri, mirror=True)
