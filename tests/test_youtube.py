"""Tests for YouTube caption scraping and the manual transcript fallback."""

import json

import httpx
import pytest

from genai_studio.services.youtube import (
    TranscriptError,
    fetch_youtube_transcript,
    get_video_id_from_url,
    parse_caption_tracks,
    pick_caption_track,
    transcript_from_json3,
)

VIDEO_ID = "dQw4w9WgXcQ"

PLAYER_RESPONSE = {
    "captions": {
        "playerCaptionsTracklistRenderer": {
            "captionTracks": [
                {"baseUrl": "https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang=de", "languageCode": "de"},
                {"baseUrl": "https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang=en", "languageCode": "en"},
            ]
        }
    }
}

WATCH_PAGE = (
    "<html><script>var ytInitialPlayerResponse = "
    + json.dumps(PLAYER_RESPONSE)
    + ";var meta = 1;</script></html>"
)

JSON3 = {
    "events": [
        {"segs": [{"utf8": "We're no strangers"}, {"utf8": " to love"}]},
        {"tStartMs": 1200},
        {"segs": [{"utf8": "You know   the rules"}]},
    ]
}


def youtube_client(watch_page=WATCH_PAGE, transcript=JSON3, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(str(request.url))
        if request.url.path == "/watch":
            return httpx.Response(200, text=watch_page)
        if request.url.path == "/api/timedtext":
            return httpx.Response(200, json=transcript)
        return httpx.Response(404)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestVideoId:
    @pytest.mark.parametrize(
        "url",
        [
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}",
            f"https://www.youtube.com/embed/{VIDEO_ID}",
            f"https://www.youtube.com/watch?feature=share&v={VIDEO_ID}",
        ],
    )
    def test_supported_forms(self, url):
        assert get_video_id_from_url(url) == VIDEO_ID

    @pytest.mark.parametrize("url", ["", "https://example.com/video", "https://youtu.be/short"])
    def test_invalid(self, url):
        assert get_video_id_from_url(url) is None


class TestCaptionParsing:
    def test_english_track_preferred(self):
        track = pick_caption_track(parse_caption_tracks(WATCH_PAGE))
        assert track["languageCode"] == "en"

    def test_first_track_when_no_english(self):
        assert pick_caption_track([{"languageCode": "fr"}, {"languageCode": "es"}])["languageCode"] == "fr"

    def test_missing_player_response(self):
        with pytest.raises(TranscriptError):
            parse_caption_tracks("<html></html>")

    def test_no_caption_tracks(self):
        with pytest.raises(TranscriptError):
            parse_caption_tracks("ytInitialPlayerResponse = {\"videoDetails\": {}};")

    def test_json3_transcript(self):
        assert transcript_from_json3(JSON3) == "We're no strangers to love You know the rules"

    def test_json3_without_events(self):
        with pytest.raises(TranscriptError):
            transcript_from_json3({"events": []})


class TestFetchTranscript:
    async def test_scraped_transcript(self):
        seen = []
        async with youtube_client(seen=seen) as client:
            video = await fetch_youtube_transcript(f"https://youtu.be/{VIDEO_ID}", client=client)

        assert video.video_id == VIDEO_ID
        assert video.title == f"YouTube Video ({VIDEO_ID})"
        assert video.transcript.startswith("We're no strangers")
        assert any("lang=en" in url and "fmt=json3" in url for url in seen)

    async def test_manual_transcript_fallback(self):
        async with youtube_client(watch_page="<html>no captions</html>") as client:
            video = await fetch_youtube_transcript(
                f"https://youtu.be/{VIDEO_ID}",
                manual_transcript="Typed by hand",
                client=client,
            )

        assert video.transcript == "Typed by hand"
        assert video.description.startswith("Manual transcript")

    async def test_no_captions_and_no_fallback(self):
        async with youtube_client(watch_page="<html>no captions</html>") as client:
            with pytest.raises(TranscriptError, match="Ensure the video has captions"):
                await fetch_youtube_transcript(f"https://youtu.be/{VIDEO_ID}", client=client)

    async def test_invalid_url(self):
        with pytest.raises(TranscriptError, match="Invalid YouTube URL"):
            await fetch_youtube_transcript("https://example.com/watch")
