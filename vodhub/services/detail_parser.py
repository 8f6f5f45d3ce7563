"""Detail parsing: normalizes an upstream record into VideoInfo with a flat episode list.

Episodes are resolved in priority order:

1. backend-native ``episodes`` / ``episodes_names`` arrays (spider backends),
2. the legacy ``vod_play_from`` / ``vod_play_url`` pair, where ``$$$``
   separates lines (mirrors), ``#`` separates episodes and ``$`` separates an
   episode's name from its URL,
3. bare stream links scraped out of ``vod_content`` (best effort only).
"""
from __future__ import annotations

import re
from typing import Optional

from vodhub.models.video import Episode, PlayLine, VideoInfo
from vodhub.services.decoder import PLAY_LINE_SEPARATOR

EPISODE_SEPARATOR = "#"
NAME_URL_SEPARATOR = "$"
DIRECT_PLAY_LABEL = "播放"
PLAYABLE_PREFIXES = ("http://", "https://", "/")

STREAM_LINK_PATTERN = re.compile(r"\$?https?://[^\"'\s]+?\.m3u8")


def episode_label(index: int) -> str:
    return f"第{index + 1}集"


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def select_line_index(play_froms: list[str], line_count: int) -> int:
    """Pick the line to flatten: first whose name contains "m3u8", else the last one.

    The index is clamped to the last available url line.
    """
    index = next((i for i, name in enumerate(play_froms) if "m3u8" in name.lower()), -1)
    if index == -1 or index >= line_count:
        index = line_count - 1
    return index


def parse_line_episodes(line: str) -> tuple[list[str], list[str]]:
    """Split one line into parallel (names, urls).

    A line without any ``$`` is a single direct play link.  Otherwise tokens
    whose URL is not playable are dropped together with their name.
    """
    if NAME_URL_SEPARATOR not in line:
        return [DIRECT_PLAY_LABEL], [line]

    names: list[str] = []
    urls: list[str] = []
    for index, token in enumerate(line.split(EPISODE_SEPARATOR)):
        parts = token.split(NAME_URL_SEPARATOR)
        if len(parts) < 2:
            continue
        url = parts[1]
        if url and url.startswith(PLAYABLE_PREFIXES):
            names.append(parts[0] or episode_label(index))
            urls.append(url)
    return names, urls


def parse_play_lines(play_from: Optional[str], play_url: Optional[str]) -> list[PlayLine]:
    """Every line with all of its ``name$url`` tokens, for mirror switching."""
    if not play_from or not play_url:
        return []
    url_lines = play_url.split(PLAY_LINE_SEPARATOR)
    lines: list[PlayLine] = []
    for index, name in enumerate(play_from.split(PLAY_LINE_SEPARATOR)):
        tokens = url_lines[index].split(EPISODE_SEPARATOR) if index < len(url_lines) else []
        episodes = []
        for token in tokens:
            parts = token.split(NAME_URL_SEPARATOR)
            if len(parts) > 1:
                episodes.append(Episode(name=parts[0], url=parts[1]))
            else:
                episodes.append(Episode(name=episode_label(index), url=""))
        lines.append(PlayLine(name=name, episodes=episodes))
    return lines


def extract_stream_links(content: str) -> list[str]:
    """Scrape m3u8 links out of free text; a heuristic, not a parser."""
    return [match.lstrip("$") for match in STREAM_LINK_PATTERN.findall(content)]


def _clean_director(director: Optional[str]) -> Optional[str]:
    # TVBoxOSC link markup is not a name
    if director and ("[a=cr:" in director or "[/a]" in director):
        return ""
    return director


def resolve_episodes(record: dict) -> tuple[list[str], list[str]]:
    """Return parallel ``(episodes_names, episodes)`` for *record*."""
    episodes = record.get("episodes")
    if isinstance(episodes, list) and episodes:
        episodes = [str(e) for e in episodes]
        names = record.get("episodes_names")
        names = [str(n) for n in names] if isinstance(names, list) else []
        # pad/truncate so names always line up with episodes
        names = [names[i] if i < len(names) else episode_label(i) for i in range(len(episodes))]
        return names, episodes

    names: list[str] = []
    urls: list[str] = []
    play_url = _as_text(record.get("vod_play_url"))
    if play_url:
        url_lines = play_url.split(PLAY_LINE_SEPARATOR)
        play_froms = (_as_text(record.get("vod_play_from")) or "").split(PLAY_LINE_SEPARATOR)
        index = select_line_index(play_froms, len(url_lines))
        names, urls = parse_line_episodes(url_lines[index])

    content = _as_text(record.get("vod_content"))
    if not urls and content:
        urls = extract_stream_links(content)
        names = [episode_label(i) for i in range(len(urls))]

    return names, urls


def parse_detail(record: dict, source_name: Optional[str] = None, source_code: Optional[str] = None) -> VideoInfo:
    """Normalize one upstream detail record.

    A record with nothing playable still yields a VideoInfo, with empty
    episode lists; ``has_episodes`` tells the caller to render an empty state.
    """
    names, episodes = resolve_episodes(record)
    play_from = _as_text(record.get("vod_play_from"))
    play_url = _as_text(record.get("vod_play_url"))

    return VideoInfo(
        title=_as_text(record.get("vod_name")),
        cover=_as_text(record.get("vod_pic")),
        desc=_as_text(record.get("vod_content")),
        type=_as_text(record.get("type_name")),
        year=_as_text(record.get("vod_year")),
        area=_as_text(record.get("vod_area")),
        director=_clean_director(_as_text(record.get("vod_director"))),
        actor=_as_text(record.get("vod_actor")),
        remarks=_as_text(record.get("vod_remarks")),
        source_name=source_name if source_name is not None else _as_text(record.get("source_name")),
        source_code=source_code if source_code is not None else _as_text(record.get("source_code")),
        episodes_names=names,
        episodes=episodes,
        lines=parse_play_lines(play_from, play_url),
        vod_play_from=play_from,
        vod_play_url=play_url,
    )
