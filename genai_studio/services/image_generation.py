"""Themed image batches: prompt enhancement, sequential generation, metadata."""

from __future__ import annotations

import asyncio
import base64
import json
import re
import time
from dataclasses import asdict, dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings
from genai_studio.services.embeddings import get_openai_client
from genai_studio.utils.retry import is_rate_limit_error, retry_async

ENHANCE_PROMPT_TEMPLATE = (
    "You are an expert prompt engineer for image generation models. Create a detailed, "
    "descriptive prompt based on the user's theme. The prompt should be vivid and suitable "
    "for high-quality image generation. Return ONLY the prompt text.\n\nTheme: {theme}\nPrompt:"
)

# Approximate USD per request.
PRICING: Dict[str, float] = {
    "dall-e-3:1024x1024": 0.04,
    "dall-e-3:1792x1024": 0.08,
    "dall-e-3:1024x1792": 0.08,
    "prompt-enhancement": 0.0001,
}


@dataclass(frozen=True)
class ImageConfig:
    name: str
    size: str
    model: str = settings.OPENAI_IMAGE_MODEL


IMAGE_CONFIGURATIONS: List[ImageConfig] = [
    ImageConfig("square", "1024x1024"),
    ImageConfig("landscape", "1792x1024"),
    ImageConfig("portrait", "1024x1792"),
]


@dataclass
class ImageResult:
    success: bool
    data: Optional[bytes] = None
    revised_prompt: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchEntry:
    params: Dict[str, str]
    cost: float
    success: bool
    filename: Optional[str] = None
    revised_prompt: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ImageBatch:
    theme: str
    enhanced_prompt: str
    total_cost: float
    output_dir: Path
    results: List[BatchEntry] = field(default_factory=list)

    def metadata(self) -> Dict[str, Any]:
        return {
            "theme": self.theme,
            "enhancedPrompt": self.enhanced_prompt,
            "totalCost": round(self.total_cost, 4),
            "results": [
                {k: v for k, v in asdict(entry).items() if v is not None}
                for entry in self.results
            ],
        }


def calculate_cost(config: ImageConfig) -> float:
    return PRICING.get(f"{config.model}:{config.size}", 0.0)


def safe_name(text: str) -> str:
    """Lower-case filesystem-safe name ("Cyber City!" -> "cyber_city_")."""
    return re.sub(r"[^a-z0-9]", "_", text.lower())


async def enhance_prompt(
    theme: str,
    client: Optional[AsyncOpenAI] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> str:
    """Expand a short theme into a detailed image prompt; fall back to the theme."""
    client = client or get_openai_client()
    try:
        response = await retry_async(
            lambda: client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[{"role": "user", "content": ENHANCE_PROMPT_TEMPLATE.format(theme=theme)}],
                max_tokens=200,
            ),
            max_attempts=settings.IMAGE_MAX_ATTEMPTS,
            retry_on=is_rate_limit_error,
            sleep=sleep,
            label="Prompt enhancement",
        )
        enhanced = (response.choices[0].message.content or "").strip()
        return enhanced or theme
    except Exception as exc:
        app_logger.error(f"Error enhancing prompt: {exc}")
        return theme


async def request_image(client: AsyncOpenAI, prompt: str, size: str, model: str) -> tuple[bytes, Optional[str]]:
    """One image generation call returning PNG bytes and the provider's revised prompt."""
    response = await client.images.generate(
        model=model,
        prompt=prompt,
        size=size,
        n=1,
        response_format="b64_json",
    )
    image = response.data[0]
    return base64.b64decode(image.b64_json), getattr(image, "revised_prompt", None)


async def generate_image(
    prompt: str,
    config: ImageConfig,
    client: Optional[AsyncOpenAI] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ImageResult:
    """Generate one image, retrying only on rate limits."""
    client = client or get_openai_client()
    try:
        data, revised = await retry_async(
            lambda: request_image(client, prompt, config.size, config.model),
            max_attempts=settings.IMAGE_MAX_ATTEMPTS,
            default_delay=settings.RETRY_DEFAULT_DELAY_SECONDS,
            retry_on=is_rate_limit_error,
            sleep=sleep,
            label=f"Image {config.name} ({config.size})",
        )
    except Exception as exc:
        app_logger.error(f"Error generating image ({config.model}, {config.size}): {exc}")
        return ImageResult(success=False, error=str(exc))
    return ImageResult(success=True, data=data, revised_prompt=revised or prompt)


async def run_image_batch(
    theme: str,
    output_root: Optional[Path] = None,
    configurations: Optional[List[ImageConfig]] = None,
    client: Optional[AsyncOpenAI] = None,
    request_delay: float = settings.BATCH_REQUEST_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ImageBatch:
    """Generate one image per configuration, strictly one after another.

    Images land in ``<output_root>/<YYYY-MM-DD>/images/`` with a
    ``metadata.json`` beside the images directory.
    """
    if not theme or not theme.strip():
        raise ValueError("Please enter a theme.")

    client = client or get_openai_client()
    configurations = configurations if configurations is not None else IMAGE_CONFIGURATIONS

    base_dir = Path(output_root or settings.GENERATED_IMAGES_DIR) / date.today().isoformat()
    images_dir = base_dir / "images"
    images_dir.mkdir(parents=True, exist_ok=True)

    enhanced = await enhance_prompt(theme, client, sleep=sleep)
    app_logger.info(f"Enhanced prompt: {enhanced}")

    batch = ImageBatch(
        theme=theme,
        enhanced_prompt=enhanced,
        total_cost=PRICING["prompt-enhancement"],
        output_dir=base_dir,
    )

    for i, config in enumerate(configurations):
        if i > 0 and request_delay > 0:
            app_logger.info(f"Waiting {request_delay:g}s to avoid rate limits...")
            await sleep(request_delay)

        app_logger.info(f"Generating: {config.model} | {config.size}")
        cost = calculate_cost(config)
        batch.total_cost += cost

        result = await generate_image(enhanced, config, client, sleep=sleep)
        entry = BatchEntry(
            params={"model": config.model, "size": config.size, "prompt": enhanced},
            cost=cost,
            success=result.success,
        )
        if result.success:
            filename = f"{safe_name(theme)}-{config.size}-{int(time.time() * 1000)}.png"
            (images_dir / filename).write_bytes(result.data)
            entry.filename = f"images/{filename}"
            entry.revised_prompt = result.revised_prompt
            app_logger.info(f"Saved: {images_dir / filename}")
        else:
            entry.error = result.error
        batch.results.append(entry)

    metadata_path = base_dir / "metadata.json"
    metadata_path.write_text(json.dumps(batch.metadata(), indent=2), encoding="utf-8")
    app_logger.info(f"Total estimated cost: ${batch.total_cost:.4f}; metadata saved to {metadata_path}")
    return batch
