"""HLS playlist service: fetches manifests and strips discontinuity-marked ad breaks."""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional
from urllib.parse import urljoin

from vodhub.models.source import Source

if TYPE_CHECKING:
    from vodhub.services.config_service import ConfigService
    from vodhub.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

DISCONTINUITY_TAG = "#EXT-X-DISCONTINUITY"
PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"
PLAYLIST_TIMEOUT_MS = 15000

# URI attribute of tags such as EXT-X-KEY, EXT-X-MAP and EXT-X-MEDIA
TAG_URI_PATTERN = re.compile(r'URI="([^"]+)"')


def filter_ads(playlist: str) -> str:
    """Drop every line carrying the discontinuity tag; all other lines pass through in order.

    Ad breaks are usually spliced in between discontinuity markers, but so is
    legitimate multi-period content, so this is a heuristic.
    """
    if not playlist:
        return ""
    return "\n".join(line for line in playlist.split("\n") if DISCONTINUITY_TAG not in line)


def absolutize_playlist(playlist: str, base_url: str) -> str:
    """Resolve relative segment, variant and tag ``URI="..."`` references against the playlist URL."""

    def rewrite_uri(match: re.Match) -> str:
        return f'URI="{urljoin(base_url, match.group(1))}"'

    lines = []
    for line in playlist.split("\n"):
        stripped = line.strip()
        if stripped.startswith("#"):
            if 'URI="' in stripped:
                line = TAG_URI_PATTERN.sub(rewrite_uri, line)
        elif stripped:
            line = urljoin(base_url, stripped)
        lines.append(line)
    return "\n".join(lines)


class HlsService:
    """Fetches manifest/level playlists for the player."""

    def __init__(self, config_service: "ConfigService", http_client: "HttpClientService"):
        self.config_service = config_service
        self.http_client = http_client

    async def fetch_playlist(self, url: str, source: Optional[Source] = None, headers: Optional[dict] = None) -> tuple[int, str]:
        """Return ``(status, body)`` for a playlist; the body is ad-filtered when enabled."""
        timeout = self.config_service.effective_timeout(source) if source else PLAYLIST_TIMEOUT_MS
        retry = self.config_service.effective_retry(source) if source else 0
        response = await self.http_client.fetch_with_timeout(url, headers=headers, timeout_ms=timeout, retry=retry)
        if not response.is_success:
            logger.warning(f"Playlist fetch for {url} returned {response.status_code}")
            return response.status_code, response.text

        body = absolutize_playlist(response.text, str(response.url))
        if self.config_service.ad_filtering_enabled:
            body = filter_ads(body)
        return response.status_code, body
