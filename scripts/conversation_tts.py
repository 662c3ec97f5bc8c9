"""Render the scripted two-speaker conversation to MP3 files."""

import asyncio
import sys
from pathlib import Path

# Add the parent directory to the path so we can import from genai_studio
sys.path.insert(0, str(Path(__file__).parent.parent))

from genai_studio.services.speech import CONVERSATION_SCRIPT, generate_conversation


async def main():
    output_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    print(f"Generating {len(CONVERSATION_SCRIPT)} dialogue lines...")
    paths = await generate_conversation(output_dir=output_dir)
    print(f"\nConversation complete: {len(paths)} files")
    for path in paths:
        print(f"  {path}")


if __name__ == "__main__":
    asyncio.run(main())
