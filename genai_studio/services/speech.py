"""Multi-speaker conversation synthesis with OpenAI text-to-speech."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from openai import AsyncOpenAI

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings
from genai_studio.services.embeddings import get_openai_client


@dataclass(frozen=True)
class DialogueLine:
    speaker: str
    emotion: str
    text: str
    filename: str
    voice: str = settings.OPENAI_TTS_VOICE


CONVERSATION_SCRIPT: List[DialogueLine] = [
    DialogueLine("Alex", "excited", "Hey! You won't believe what just happened! I got the job at Google!", "01_alex_excited.mp3", "echo"),
    DialogueLine("Sam", "surprised_happy", "Oh my goodness, Alex! That's absolutely incredible news! I knew you could do it!", "02_sam_surprised.mp3", "nova"),
    DialogueLine("Alex", "nervous", "Thanks! But honestly, I'm a bit nervous. It's a huge responsibility, you know?", "03_alex_nervous.mp3", "echo"),
    DialogueLine("Sam", "reassuring", "Don't worry about it. You've worked so hard for this. You're going to do amazing things there.", "04_sam_reassuring.mp3", "nova"),
    DialogueLine("Alex", "grateful", "You're right. Thanks for always believing in me. It really means a lot.", "05_alex_grateful.mp3", "echo"),
    DialogueLine("Sam", "cheerful", "That's what friends are for! Now, let's go celebrate! Dinner is on me tonight!", "06_sam_cheerful.mp3", "nova"),
    DialogueLine("Alex", "happy", "You're the best! Let's do it! I'm thinking pizza and ice cream!", "07_alex_happy.mp3", "echo"),
    DialogueLine("Sam", "laughing", "Ha ha! Classic Alex! Pizza and ice cream it is then!", "08_sam_laughing.mp3", "nova"),
]


async def synthesize_line(
    line: DialogueLine,
    output_dir: Path,
    client: Optional[AsyncOpenAI] = None,
) -> Path:
    """Render one line to ``output_dir / line.filename``."""
    client = client or get_openai_client()
    app_logger.info(f"[{line.speaker}] ({line.emotion}) \"{line.text}\"")
    try:
        response = await client.audio.speech.create(
            model=settings.OPENAI_TTS_MODEL,
            voice=line.voice,
            input=line.text,
        )
        output_path = output_dir / line.filename
        output_path.write_bytes(response.content)
    except Exception as exc:
        app_logger.error(f"Speech synthesis failed for {line.filename}: {exc}")
        raise
    app_logger.info(f"Saved: {line.filename}")
    return output_path


async def generate_conversation(
    script: Sequence[DialogueLine] = CONVERSATION_SCRIPT,
    output_dir: Optional[Path] = None,
    client: Optional[AsyncOpenAI] = None,
) -> List[Path]:
    """Synthesise every line in order and return the written paths."""
    output_dir = Path(output_dir or settings.SPEECH_ASSETS_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    client = client or get_openai_client()

    paths = []
    for line in script:
        paths.append(await synthesize_line(line, output_dir, client))
    app_logger.info(f"All {len(paths)} audio files saved in: {output_dir}")
    return paths
