"""YouTube caption scraping for video ingestion."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from genai_studio.config.logger import app_logger

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_VIDEO_ID = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")
_PLAYER_RESPONSE = re.compile(r"ytInitialPlayerResponse\s*=\s*({.+?});", re.DOTALL)
_MULTI_SPACE = re.compile(r" {2,}")


class TranscriptError(Exception):
    """Raised when no transcript can be obtained for a video."""


@dataclass
class YouTubeVideoInfo:
    title: str
    description: str
    transcript: str
    video_id: str


def get_video_id_from_url(url: str) -> Optional[str]:
    """Return the 11-character video id, or None for anything else."""
    match = _VIDEO_ID.match(url or "")
    if match and len(match.group(2)) == 11:
        return match.group(2)
    return None


def parse_caption_tracks(html: str) -> list:
    match = _PLAYER_RESPONSE.search(html)
    if not match:
        raise TranscriptError("Could not find player response in page source")
    try:
        player_response = json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        raise TranscriptError("Could not parse player response") from exc

    tracks = (
        player_response.get("captions", {})
        .get("playerCaptionsTracklistRenderer", {})
        .get("captionTracks")
    )
    if not tracks:
        raise TranscriptError("No caption tracks found in player response")
    return tracks


def pick_caption_track(tracks: list) -> dict:
    """English track when present, else the first one."""
    return next((t for t in tracks if t.get("languageCode") == "en"), tracks[0])


def transcript_from_json3(payload: dict) -> str:
    events = payload.get("events") if isinstance(payload, dict) else None
    if not events:
        raise TranscriptError("No transcript events found in JSON response")
    lines = [
        "".join(seg.get("utf8", "") for seg in event["segs"])
        for event in events
        if event.get("segs")
    ]
    text = _MULTI_SPACE.sub(" ", " ".join(lines)).strip()
    if not text:
        raise TranscriptError("No transcript text extracted from JSON")
    return text


async def fetch_transcript_via_scraping(video_id: str, client: httpx.AsyncClient) -> str:
    page = await client.get(
        f"https://www.youtube.com/watch?v={video_id}",
        headers={"User-Agent": BROWSER_USER_AGENT, "Accept-Language": "en-US,en;q=0.9"},
    )
    page.raise_for_status()

    track = pick_caption_track(parse_caption_tracks(page.text))
    transcript_url = f"{track['baseUrl']}&fmt=json3"
    app_logger.debug(f"Fetching transcript from: {transcript_url[:100]}...")

    response = await client.get(
        transcript_url,
        headers={
            "User-Agent": BROWSER_USER_AGENT,
            "Referer": "https://www.youtube.com/",
            "Origin": "https://www.youtube.com",
        },
    )
    response.raise_for_status()
    if not response.text.strip():
        raise TranscriptError("Empty transcript response from YouTube")
    try:
        payload = response.json()
    except ValueError as exc:
        raise TranscriptError("Invalid JSON response from YouTube transcript API") from exc
    return transcript_from_json3(payload)


async def fetch_youtube_transcript(
    url: str,
    manual_transcript: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> YouTubeVideoInfo:
    """Fetch a video's captions, falling back to ``manual_transcript``."""
    video_id = get_video_id_from_url(url)
    if not video_id:
        raise TranscriptError("Invalid YouTube URL")

    title = f"YouTube Video ({video_id})"
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as owned:
                transcript = await fetch_transcript_via_scraping(video_id, owned)
        else:
            transcript = await fetch_transcript_via_scraping(video_id, client)
        app_logger.info(f"Fetched transcript for {video_id} ({len(transcript)} characters)")
        return YouTubeVideoInfo(
            title=title,
            description=f"Transcript from YouTube video {url} [Scraped]",
            transcript=transcript,
            video_id=video_id,
        )
    except (TranscriptError, httpx.HTTPError, KeyError) as exc:
        app_logger.warning(f"Transcript scraping failed for {video_id}: {exc}")

    if manual_transcript and manual_transcript.strip():
        app_logger.info("Using manual transcript fallback")
        return YouTubeVideoInfo(
            title=title,
            description=f"Manual transcript for YouTube video {url}",
            transcript=manual_transcript,
            video_id=video_id,
        )

    raise TranscriptError("Failed to fetch transcript. Ensure the video has captions.")
