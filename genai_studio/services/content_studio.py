"""Content studio: article suite, visuals and narration for a topic."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings
from genai_studio.services.embeddings import get_openai_client
from genai_studio.services.image_generation import request_image, safe_name
from genai_studio.utils.retry import retry_async

CONTENT_SYSTEM_PROMPT = "You are a professional content creator. Output ONLY valid JSON."

CONTENT_USER_PROMPT = """Create a content suite for: "{topic}".
Include:
1. A 500-word article.
2. A 2-sentence summary.
3. Three social media posts (Twitter, LinkedIn, Instagram).
Format: {{"article": "...", "summary": "...", "socialPosts": ["...", "...", "..."]}}"""

# Approximate USD per operation.
OPERATION_COSTS: Dict[str, float] = {
    "gpt-4o": 0.01,
    "dall-e-3-header": 0.04,
    "dall-e-3-thumb": 0.04,
    "tts-1": 0.015,
}


@dataclass
class ContentSuite:
    article: str
    summary: str
    social_posts: List[str]

    @classmethod
    def from_json(cls, raw: str) -> "ContentSuite":
        data = json.loads(raw)
        return cls(
            article=str(data["article"]),
            summary=str(data["summary"]),
            social_posts=[str(post) for post in data.get("socialPosts", [])],
        )

    @classmethod
    def fallback(cls, topic: str) -> "ContentSuite":
        return cls(
            article=f"Fallback article about {topic}.",
            summary=f"Summary of {topic}.",
            social_posts=[f"Post about {topic}"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"article": self.article, "summary": self.summary, "socialPosts": self.social_posts}


@dataclass
class StudioStats:
    total_cost: float = 0.0
    operations: int = 0
    timings: Dict[str, float] = field(default_factory=dict)
    started_at: float = field(default_factory=time.perf_counter)


class ContentStudio:
    """Produces a content suite per topic under ``<base_dir>/<topic_slug>/``."""

    def __init__(
        self,
        base_dir: Optional[Path] = None,
        client: Optional[AsyncOpenAI] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_dir = Path(base_dir or settings.CONTENT_SUITE_DIR)
        self.current_output_dir: Optional[Path] = None
        self.stats = StudioStats()
        self._client = client
        self._sleep = sleep

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    def init(self, topic: str) -> Path:
        self.current_output_dir = self.base_dir / safe_name(topic)
        self.current_output_dir.mkdir(parents=True, exist_ok=True)
        app_logger.info(f"Content studio initialized for: {topic}")
        return self.current_output_dir

    def track_operation(self, operation: str) -> None:
        cost = OPERATION_COSTS.get(operation, 0.0)
        self.stats.operations += 1
        self.stats.total_cost += cost
        app_logger.info(f"Operation: {operation} | Cost: ${cost:.4f}")

    async def _retry(self, operation: Callable[[], Awaitable[Any]], label: str) -> Any:
        return await retry_async(
            operation,
            max_attempts=settings.STUDIO_MAX_ATTEMPTS,
            default_delay=settings.STUDIO_RETRY_DELAY_SECONDS,
            use_server_delay=False,
            sleep=self._sleep,
            label=label,
        )

    async def generate_text(self, topic: str) -> ContentSuite:
        """Create and save the JSON content suite, or return fallback content."""
        start = time.perf_counter()
        try:
            response = await self._retry(
                lambda: self.client.chat.completions.create(
                    model=settings.OPENAI_CONTENT_MODEL,
                    messages=[
                        {"role": "system", "content": CONTENT_SYSTEM_PROMPT},
                        {"role": "user", "content": CONTENT_USER_PROMPT.format(topic=topic)},
                    ],
                    response_format={"type": "json_object"},
                ),
                label="Content generation",
            )
            suite = ContentSuite.from_json(response.choices[0].message.content)
        except Exception as exc:
            app_logger.error(f"Error generating text: {exc}")
            return ContentSuite.fallback(topic)

        self.track_operation("gpt-4o")
        path = self.current_output_dir / "content.json"
        path.write_text(json.dumps(suite.to_dict(), indent=2), encoding="utf-8")
        self.stats.timings["text"] = time.perf_counter() - start
        app_logger.info(f"Content saved to {path}")
        return suite

    async def generate_visuals(self, topic: str, summary: str) -> List[Path]:
        start = time.perf_counter()
        shots = [
            (
                "header.png",
                "dall-e-3-header",
                f"A professional cinematic header for an article about {topic}. "
                f"Summary: {summary}. Style: Modern, clean.",
            ),
            (
                "thumbnail.png",
                "dall-e-3-thumb",
                f"A vibrant square thumbnail icon for {topic}. Minimalist.",
            ),
        ]
        saved: List[Path] = []
        try:
            for filename, operation, prompt in shots:
                data, _ = await self._retry(
                    lambda prompt=prompt: request_image(
                        self.client, prompt, "1024x1024", settings.OPENAI_IMAGE_MODEL
                    ),
                    label=f"Image {filename}",
                )
                path = self.current_output_dir / filename
                path.write_bytes(data)
                saved.append(path)
                self.track_operation(operation)
        except Exception as exc:
            app_logger.error(f"Error generating visuals: {exc}")
            return saved

        self.stats.timings["visuals"] = time.perf_counter() - start
        return saved

    async def generate_audio(self, text: str) -> Optional[Path]:
        start = time.perf_counter()
        try:
            response = await self._retry(
                lambda: self.client.audio.speech.create(
                    model=settings.OPENAI_TTS_MODEL,
                    voice=settings.OPENAI_TTS_VOICE,
                    input=text,
                ),
                label="Narration",
            )
            path = self.current_output_dir / "narration.mp3"
            path.write_bytes(response.content)
        except Exception as exc:
            app_logger.error(f"Error generating audio: {exc}")
            return None

        self.track_operation("tts-1")
        self.stats.timings["audio"] = time.perf_counter() - start
        return path

    def report(self) -> Dict[str, Any]:
        report = {
            "duration": round(time.perf_counter() - self.stats.started_at, 2),
            "totalCost": round(self.stats.total_cost, 4),
            "operations": self.stats.operations,
            "timings": {k: round(v, 2) for k, v in self.stats.timings.items()},
            "outputDir": str(self.current_output_dir) if self.current_output_dir else None,
        }
        app_logger.info(f"Content studio report: {json.dumps(report)}")
        return report

    async def run(self, topic: str) -> Dict[str, Any]:
        self.init(topic)
        suite = await self.generate_text(topic)
        await self.generate_visuals(topic, suite.summary)
        await self.generate_audio(suite.summary)
        return self.report()

    async def run_batch(self, topics: List[str]) -> List[Dict[str, Any]]:
        """Run topics one after another; stats accumulate across the batch."""
        reports = []
        for topic in topics:
            app_logger.info(f"Processing topic: {topic}")
            reports.append(await self.run(topic))
        return reports
