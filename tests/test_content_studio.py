"""Tests for the content studio."""

import json

import pytest

from genai_studio.services.content_studio import ContentStudio, ContentSuite

SUITE = {
    "article": "Solar panels keep getting cheaper.",
    "summary": "Solar is cheap. Adoption is rising.",
    "socialPosts": ["tweet", "linkedin post", "instagram caption"],
}


async def no_sleep(seconds):
    return None


class TestContentSuite:
    def test_from_json(self):
        suite = ContentSuite.from_json(json.dumps(SUITE))
        assert suite.social_posts == SUITE["socialPosts"]
        assert suite.to_dict() == SUITE

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            ContentSuite.from_json("not json")


class TestContentStudio:
    async def test_full_run(self, tmp_path, fake_openai):
        client = fake_openai(content=json.dumps(SUITE))
        studio = ContentStudio(base_dir=tmp_path, client=client, sleep=no_sleep)

        report = await studio.run("Solar Energy")

        output = tmp_path / "solar_energy"
        assert json.loads((output / "content.json").read_text()) == SUITE
        assert (output / "header.png").exists()
        assert (output / "thumbnail.png").exists()
        assert (output / "narration.mp3").read_bytes() == b"ID3 fake"
        assert report["operations"] == 4
        assert report["totalCost"] == pytest.approx(0.105)
        assert set(report["timings"]) == {"text", "visuals", "audio"}
        assert client.calls["speech"][0]["input"] == SUITE["summary"]

    async def test_text_failure_uses_fallback(self, tmp_path, fake_openai):
        client = fake_openai(content="{broken")
        studio = ContentStudio(base_dir=tmp_path, client=client, sleep=no_sleep)
        studio.init("Robots")

        suite = await studio.generate_text("Robots")

        assert suite.article == "Fallback article about Robots."
        assert studio.stats.operations == 0

    async def test_remote_calls_retried_three_times(self, tmp_path, fake_openai):
        delays = []

        async def sleep(seconds):
            delays.append(seconds)

        client = fake_openai(image_errors=[RuntimeError("timeout")] * 3)
        studio = ContentStudio(base_dir=tmp_path, client=client, sleep=sleep)
        studio.init("Robots")

        saved = await studio.generate_visuals("Robots", "summary")

        assert saved == []
        assert len(client.calls["images"]) == 3
        assert delays == [2, 2]

    async def test_batch_accumulates_stats(self, tmp_path, fake_openai):
        studio = ContentStudio(base_dir=tmp_path, client=fake_openai(content=json.dumps(SUITE)), sleep=no_sleep)

        reports = await studio.run_batch(["Topic A", "Topic B"])

        assert [r["operations"] for r in reports] == [4, 8]
        assert (tmp_path / "topic_a").is_dir() and (tmp_path / "topic_b").is_dir()
