"""Blog outline assistant: streamed outline, short summary and follow-ups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from openai import AsyncOpenAI

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings
from genai_studio.services.embeddings import get_openai_client

OUTLINE_SYSTEM_PROMPT = """You are an expert content strategist. Create a detailed blog post outline for the given topic.
Include:
- A compelling title
- Introduction hook
- 5-7 main sections with bullet points
- Key takeaways
- Conclusion"""

SUMMARY_SYSTEM_PROMPT = "You are a concise summarizer. Summarize content in exactly 2 sentences."

FOLLOW_UP_SYSTEM_PROMPT = "You are an expert content strategist."


@dataclass(frozen=True)
class ContentMode:
    name: str
    temperature: float
    description: str


CONTENT_MODES: Dict[str, ContentMode] = {
    "1": ContentMode("creative", 0.9, "imaginative, varied output"),
    "2": ContentMode("balanced", 0.7, "default"),
    "3": ContentMode("factual", 0.3, "precise, focused output"),
}
DEFAULT_MODE = CONTENT_MODES["2"]


def select_mode(choice: str) -> ContentMode:
    """Map a menu choice to a mode; anything unknown is balanced."""
    return CONTENT_MODES.get((choice or "").strip(), DEFAULT_MODE)


class OutlineAssistant:
    """Keeps the running conversation for one blog topic at a time."""

    def __init__(
        self,
        mode: ContentMode = DEFAULT_MODE,
        client: Optional[AsyncOpenAI] = None,
        on_token: Optional[Callable[[str], None]] = None,
        model: str = settings.OPENAI_MODEL,
    ):
        self.mode = mode
        self.model = model
        self.history: List[Dict[str, str]] = []
        self.current_topic = ""
        self.current_outline = ""
        self._client = client
        self._on_token = on_token

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    async def _stream(self, messages: List[Dict[str, str]], max_tokens: int) -> str:
        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.mode.temperature,
            max_tokens=max_tokens,
            stream=True,
        )
        parts: List[str] = []
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                parts.append(delta)
                if self._on_token:
                    self._on_token(delta)
        return "".join(parts)

    async def generate_outline(self, topic: str) -> str:
        """Stream an outline for ``topic`` and start a fresh history for it."""
        request = f"Create a blog post outline for: {topic}"
        app_logger.info(f"Generating outline ({self.mode.name}) for: {topic}")
        outline = await self._stream(
            [
                {"role": "system", "content": OUTLINE_SYSTEM_PROMPT},
                {"role": "user", "content": request},
            ],
            max_tokens=1000,
        )
        self.current_topic = topic
        self.current_outline = outline
        self.history = [
            {"role": "user", "content": request},
            {"role": "assistant", "content": outline},
        ]
        return outline

    async def summarize(self, outline: Optional[str] = None) -> str:
        outline = outline if outline is not None else self.current_outline
        return await self._stream(
            [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Summarize this blog outline in exactly 2 sentences:\n\n{outline}",
                },
            ],
            max_tokens=200,
        )

    async def answer_follow_up(self, question: str) -> str:
        """Answer with the accumulated history as context, then record the turn."""
        answer = await self._stream(
            [{"role": "system", "content": FOLLOW_UP_SYSTEM_PROMPT}]
            + self.history
            + [{"role": "user", "content": question}],
            max_tokens=500,
        )
        self.history.append({"role": "user", "content": question})
        self.history.append({"role": "assistant", "content": answer})
        return answer
