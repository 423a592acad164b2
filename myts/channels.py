import re

CHANNEL_ID_PATTERN = r"UC[a-zA-Z0-9_-]{22}"

_CHANNEL_ID_RE = re.compile(CHANNEL_ID_PATTERN)
# The ID must start the string or follow a path separator
_CHANNEL_URI_RE = re.compile(rf"(?:^|/)({CHANNEL_ID_PATTERN})/?$")


def is_valid_channel_id(channel_id: str) -> bool:
    """Return True if the value is a bare YouTube channel ID."""
    if not channel_id:
        return False
    return _CHANNEL_ID_RE.fullmatch(channel_id) is not None


def is_valid_channel_uri(uri: str) -> bool:
    """Return True if the input ends with a YouTube channel ID.

    Accepts channel URLs such as ``https://youtube.com/channel/UC...`` with an
    optional trailing slash, as well as a bare channel ID. This is looser than
    a channel URL check: the path before the ID is not inspected, so
    ``https://youtube.com/user/UC...`` or any other path whose last segment is
    a channel ID passes too.
    """
    if not uri:
        return False
    return _CHANNEL_URI_RE.search(uri) is not None


def channel_id_from_uri(uri: str) -> str:
    """Return the YouTube channel ID from a channel URL."""
    match = _CHANNEL_URI_RE.search(uri or "")
    if match is None:
        raise ValueError(f"Invalid YouTube channel URL: {uri}")
    return match.group(1)
