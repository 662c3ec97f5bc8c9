"""Tests for themed image batches."""

import json

import pytest

from genai_studio.services.image_generation import (
    IMAGE_CONFIGURATIONS,
    ImageConfig,
    calculate_cost,
    enhance_prompt,
    generate_image,
    run_image_batch,
    safe_name,
)


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class TestHelpers:
    def test_safe_name(self):
        assert safe_name("Cyber City!") == "cyber_city_"

    def test_costs(self):
        assert [calculate_cost(c) for c in IMAGE_CONFIGURATIONS] == [0.04, 0.08, 0.08]
        assert calculate_cost(ImageConfig("odd", "512x512")) == 0.0

    async def test_enhance_prompt(self, fake_openai):
        client = fake_openai(content="  A neon skyline at dusk, rain-slicked streets  ")
        assert await enhance_prompt("cyber city", client) == "A neon skyline at dusk, rain-slicked streets"

    async def test_enhance_prompt_falls_back_to_theme(self, fake_openai):
        client = fake_openai(chat_error=RuntimeError("model unavailable"))
        assert await enhance_prompt("cyber city", client) == "cyber city"


class TestGenerateImage:
    async def test_rate_limited_until_third_attempt(self, fake_openai, rate_limit_error, captured_warnings):
        client = fake_openai(image_errors=[rate_limit_error(), rate_limit_error()])
        sleep = SleepRecorder()

        result = await generate_image("a lighthouse", IMAGE_CONFIGURATIONS[0], client, sleep=sleep)

        assert result.success
        assert result.data == b"\x89PNG fake"
        assert len(client.calls["images"]) == 3
        assert len(sleep.delays) == 2
        assert len([m for m in captured_warnings if "Rate limit hit" in m]) == 2

    async def test_other_errors_are_not_retried(self, fake_openai):
        client = fake_openai(image_errors=[RuntimeError("content policy violation")])
        sleep = SleepRecorder()

        result = await generate_image("a lighthouse", IMAGE_CONFIGURATIONS[0], client, sleep=sleep)

        assert not result.success
        assert "content policy" in result.error
        assert len(client.calls["images"]) == 1
        assert sleep.delays == []


class TestRunImageBatch:
    async def test_sequential_batch_with_metadata(self, tmp_path, fake_openai):
        client = fake_openai(content="A glowing cyberpunk city")
        sleep = SleepRecorder()

        batch = await run_image_batch("Cyber City", output_root=tmp_path, client=client, request_delay=10, sleep=sleep)

        assert sleep.delays == [10, 10]
        assert [call["size"] for call in client.calls["images"]] == ["1024x1024", "1792x1024", "1024x1792"]
        assert all(call["prompt"] == "A glowing cyberpunk city" for call in client.calls["images"])

        images = sorted((batch.output_dir / "images").iterdir())
        assert len(images) == 3
        assert all(p.name.startswith("cyber_city-") and p.suffix == ".png" for p in images)

        metadata = json.loads((batch.output_dir / "metadata.json").read_text())
        assert metadata["theme"] == "Cyber City"
        assert metadata["enhancedPrompt"] == "A glowing cyberpunk city"
        assert metadata["totalCost"] == pytest.approx(0.2001)
        assert [r["success"] for r in metadata["results"]] == [True, True, True]
        assert metadata["results"][0]["filename"].startswith("images/")

    async def test_enhancement_retry_uses_injected_sleep(self, tmp_path, fake_openai, rate_limit_error):
        client = fake_openai(content="A glowing cyberpunk city", chat_errors=[rate_limit_error(retry_after=3)])
        sleep = SleepRecorder()

        batch = await run_image_batch("Cyber City", output_root=tmp_path, client=client, request_delay=10, sleep=sleep)

        assert batch.enhanced_prompt == "A glowing cyberpunk city"
        assert len(client.calls["chat"]) == 2
        assert sleep.delays == [3, 10, 10]

    async def test_failed_configuration_recorded(self, tmp_path, fake_openai):
        client = fake_openai(image_errors=[RuntimeError("rejected prompt")])

        batch = await run_image_batch(
            "sunset",
            output_root=tmp_path,
            configurations=IMAGE_CONFIGURATIONS[:2],
            client=client,
            request_delay=0,
        )

        assert [entry.success for entry in batch.results] == [False, True]
        assert batch.results[0].error == "rejected prompt"
        assert batch.results[0].filename is None

    async def test_empty_theme(self, tmp_path):
        with pytest.raises(ValueError):
            await run_image_batch("   ", output_root=tmp_path)
