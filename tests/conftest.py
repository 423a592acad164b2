"""
Shared pytest configuration and fixtures.
"""

import pytest
import tempfile
import shutil
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock
import sys

# Add the project root to the Python path to ensure imports work
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from myts.config import Settings  # noqa: E402

CHANNEL_A = "UCBR8-60-B28hp2BmDPdntcQ"
CHANNEL_B = "UC_x5XG1OV2P6uZZ5FSM9Ttw"
CHANNEL_C = "UCsBjURrPoezykLs9EqgamOA"


@pytest.fixture
def temp_directory():
    """Create a temporary directory for test files."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def storage_file(temp_directory):
    """Path of a not yet existing subscriptions file."""
    return temp_directory / "subscriptions"


@pytest.fixture
def settings(storage_file):
    """Settings pointing at the temporary storage file."""
    return Settings(storage_file=str(storage_file))


@pytest.fixture
def now():
    """Fixed reference time for rendering."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_feed_item(video_id, published, title="Video", author="Channel"):
    """Build a feed2json item the way the translation endpoint returns it."""
    item = {
        "guid": f"yt:video:{video_id}",
        "url": f"https://www.youtube.com/watch?v={video_id}",
        "title": title,
        "date_published": published,
    }
    if author is not None:
        item["author"] = {"name": author}
    return item


def make_response(payload=None, status_code=200, json_error=None):
    """Mock a requests.Response returning the given JSON payload."""
    response = Mock()
    response.status_code = status_code
    if status_code >= 400:
        import requests

        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error"
        )
    else:
        response.raise_for_status.return_value = None
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response
